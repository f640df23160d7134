import logging
from typing import Dict, Optional
from django.contrib.auth.models import User
from apps.domain.models import AuditEntry, Document

logger = logging.getLogger('apps')


def record_event(
    document: Document,
    event_type: str,
    actor: Optional[User] = None,
    ip_address: Optional[str] = None,
    metadata: Optional[Dict] = None,
) -> AuditEntry:
    """Anexa um evento à trilha de auditoria. Ações de signatários anônimos ficam sem ator."""
    if actor is not None and not getattr(actor, 'is_authenticated', False):
        actor = None

    entry = AuditEntry.objects.create(
        document=document,
        event_type=event_type,
        actor=actor,
        ip_address=ip_address,
        metadata=metadata or {},
    )
    logger.debug(f'Audit {event_type} recorded for document {document.pk}')
    return entry
