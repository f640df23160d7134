import logging
from datetime import datetime
from typing import Dict, Optional
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone
from apps.application.config import WorkflowConfig
from apps.application.services.audit_trail import record_event
from apps.application.services.notification_service import NotificationService
from apps.domain.errors import ErrorCode, WorkflowError
from apps.domain.models import AuditEntry, Document, Signature

logger = logging.getLogger('apps')


class ReminderThrottle:
    def __init__(self, config: Optional[WorkflowConfig] = None, notifications: Optional[NotificationService] = None):
        self.config = config or WorkflowConfig.from_settings()
        self.notifications = notifications or NotificationService(self.config)

    def _cooldown_error(self, last_sent: datetime) -> WorkflowError:
        next_available = last_sent + self.config.reminder_cooldown
        return WorkflowError(
            ErrorCode.REMINDER_COOLDOWN,
            'A reminder was already sent recently',
            {'next_available': next_available.isoformat()},
        )

    def remind(self, document_id, signature_id, owner: User) -> Dict:
        try:
            document = Document.objects.select_related('owner').get(pk=document_id, owner=owner)
            signature = document.signatures.get(pk=signature_id)
        except (Document.DoesNotExist, Signature.DoesNotExist, ValidationError):
            raise WorkflowError(ErrorCode.NOT_FOUND, 'Signature not found')

        if document.status != Document.PENDING:
            raise WorkflowError(ErrorCode.INVALID_STATUS, f'Cannot remind: document is {document.status}')
        if signature.status != Signature.PENDING:
            raise WorkflowError(ErrorCode.INVALID_STATUS, 'Cannot remind: signature is not pending')

        now = timezone.now()
        last_sent = signature.reminder_sent_at
        if last_sent and now - last_sent < self.config.reminder_cooldown:
            raise self._cooldown_error(last_sent)

        with transaction.atomic():
            # Condicional no valor lido: dois lembretes simultâneos não passam juntos
            claimed = Signature.objects.filter(
                pk=signature.pk,
                status=Signature.PENDING,
                reminder_sent_at=last_sent,
            ).update(reminder_sent_at=now)
            if not claimed:
                signature.refresh_from_db()
                if signature.reminder_sent_at:
                    raise self._cooldown_error(signature.reminder_sent_at)
                raise WorkflowError(ErrorCode.INVALID_STATUS, 'Cannot remind: signature is not pending')

            self.notifications.send_reminder(document, signature)
            record_event(document, AuditEntry.DOCUMENT_REMINDED, actor=owner, metadata={
                'signature_id': str(signature.pk),
                'signer_email': signature.signer_email,
            })

        logger.info(f'Reminder sent to {signature.signer_email} for document {document.pk}')
        return {'reminded': True, 'reminder_sent_at': now}

    def send_due_reminders(self, now: Optional[datetime] = None) -> int:
        """Lembrete automático para quem ainda não assinou e cujo prazo vence em breve."""
        now = now or timezone.now()
        window_end = now + self.config.auto_reminder_window
        candidates = Signature.objects.filter(
            status=Signature.PENDING,
            document__status=Document.PENDING,
            document__expires_at__gt=now,
            document__expires_at__lte=window_end,
            reminder_sent_at__isnull=True,
            invited_at__isnull=False,
        ).select_related('document', 'document__owner')

        sent = 0
        for signature in candidates:
            with transaction.atomic():
                claimed = Signature.objects.filter(
                    pk=signature.pk,
                    status=Signature.PENDING,
                    reminder_sent_at__isnull=True,
                ).update(reminder_sent_at=now)
                if not claimed:
                    continue
                self.notifications.send_reminder(signature.document, signature)
                record_event(signature.document, AuditEntry.DOCUMENT_REMINDED, metadata={
                    'signature_id': str(signature.pk),
                    'signer_email': signature.signer_email,
                    'automatic': True,
                })
            sent += 1

        if sent:
            logger.info(f'{sent} automatic reminder(s) queued')
        return sent
