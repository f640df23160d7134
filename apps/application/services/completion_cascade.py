import logging
from typing import Optional
from django.db import transaction
from django.utils import timezone
from apps.application.config import WorkflowConfig
from apps.application.services.audit_trail import record_event
from apps.application.services.notification_service import NotificationService
from apps.domain.models import AuditEntry, Document, Recipient, Signature

logger = logging.getLogger('apps')


class CompletionCascade:
    """Conclui o documento quando todas as assinaturas estão SIGNED.

    A transição PENDING -> SIGNED do documento é um UPDATE condicional;
    apenas a requisição que efetivamente altera a linha executa os efeitos
    (auditoria, e-mail ao proprietário, webhook e cópias).
    """

    def __init__(self, config: Optional[WorkflowConfig] = None, notifications: Optional[NotificationService] = None):
        self.config = config or WorkflowConfig.from_settings()
        self.notifications = notifications or NotificationService(self.config)

    def run(self, document_id) -> bool:
        with transaction.atomic():
            statuses = list(
                Signature.objects.filter(document_id=document_id).values_list('status', flat=True)
            )
            # Uma recusa impede a conclusão: só void + reenvio resolve
            if not statuses or any(status != Signature.SIGNED for status in statuses):
                return False

            now = timezone.now()
            won = Document.objects.filter(pk=document_id, status=Document.PENDING).update(
                status=Document.SIGNED,
                completed_at=now,
                updated_at=now,
            )
            if not won:
                logger.debug(f'Document {document_id} already completed by a concurrent request')
                return False

            document = Document.objects.select_related('owner').get(pk=document_id)
            record_event(document, AuditEntry.DOCUMENT_COMPLETED, metadata={
                'signature_count': len(statuses),
                'completed_at': now.isoformat(),
            })
            self.notifications.notify_owner_completed(document)
            self.notifications.emit_event('document.completed', document, {
                'completed_at': now.isoformat(),
            })
            notified = self.notify_recipients(document)

        logger.info(f'Document {document_id} completed; {notified} CC recipient(s) notified')
        return True

    def notify_recipients(self, document: Document) -> int:
        notified = 0
        for recipient in document.recipients.filter(notified_at__isnull=True):
            stamped = Recipient.objects.filter(pk=recipient.pk, notified_at__isnull=True).update(
                notified_at=timezone.now()
            )
            if not stamped:
                continue
            self.notifications.notify_recipient_completed(document, recipient)
            notified += 1
        return notified
