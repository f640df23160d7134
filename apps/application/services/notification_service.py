import logging
import threading
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from django.db import connection, transaction
from django.utils import timezone
from apps.application.config import WorkflowConfig
from apps.domain.models import Document, OutboxMessage, Recipient, Signature

logger = logging.getLogger('apps')


def format_datetime(value: Optional[datetime]) -> str:
    if value is None:
        return ''
    return timezone.localtime(value).strftime('%d/%m/%Y %H:%M')


def owner_display_name(document: Document) -> str:
    owner = document.owner
    return owner.get_full_name() or owner.username


class NotificationService:
    """Enfileira e-mails e webhooks no outbox.

    Deve ser chamado dentro da mesma transação que altera o estado: a
    mensagem só existe se a mudança for confirmada. Após o commit a entrega
    é disparada conforme OUTBOX_DISPATCH_MODE, sem bloquear a requisição.
    """

    def __init__(self, config: Optional[WorkflowConfig] = None, dispatcher=None):
        self.config = config or WorkflowConfig.from_settings()
        self._dispatcher = dispatcher

    @property
    def dispatcher(self):
        if self._dispatcher is None:
            from apps.infrastructure.services.outbox_dispatcher import OutboxDispatcher
            self._dispatcher = OutboxDispatcher(self.config)
        return self._dispatcher

    def enqueue_email(self, template_id: str, recipient: str, variables: Dict, document: Optional[Document] = None) -> Optional[OutboxMessage]:
        if not recipient:
            logger.warning(f'Email {template_id} skipped: no recipient address')
            return None

        message = OutboxMessage.objects.create(
            channel=OutboxMessage.EMAIL,
            template=template_id,
            recipient=recipient,
            payload=variables,
            document=document,
        )
        logger.info(f'Email {template_id} queued for {recipient} (outbox {message.pk})')
        self._schedule_dispatch(message.pk)
        return message

    def enqueue_webhook(self, event_type: str, payload: Dict, document: Optional[Document] = None) -> Optional[OutboxMessage]:
        if not self.config.webhook_url:
            return None

        message = OutboxMessage.objects.create(
            channel=OutboxMessage.WEBHOOK,
            template=event_type,
            recipient=self.config.webhook_url,
            payload=payload,
            document=document,
        )
        logger.info(f'Webhook {event_type} queued (outbox {message.pk})')
        self._schedule_dispatch(message.pk)
        return message

    def _schedule_dispatch(self, message_id: int) -> None:
        if self.config.outbox_dispatch_mode == 'off':
            return
        transaction.on_commit(lambda: self._dispatch_after_commit(message_id))

    def _dispatch_after_commit(self, message_id: int) -> None:
        if self.config.outbox_dispatch_mode == 'inline':
            self.dispatcher.dispatch_message(message_id)
            return

        thread = threading.Thread(target=self._dispatch_in_background, args=(message_id,), daemon=True)
        thread.start()

    def _dispatch_in_background(self, message_id: int) -> None:
        try:
            self.dispatcher.dispatch_message(message_id)
        except Exception as e:
            logger.error(f'Error dispatching outbox message {message_id}: {str(e)}')
        finally:
            connection.close()

    def invite_signers(self, document: Document, signatures: Iterable[Signature]) -> List[Signature]:
        """Convida a etapa atual. Cada titular recebe o convite uma única vez."""
        invited = []
        now = timezone.now()
        with transaction.atomic():
            for signature in signatures:
                claimed = Signature.objects.filter(
                    pk=signature.pk,
                    status=Signature.PENDING,
                    invited_at__isnull=True,
                ).update(invited_at=now)
                if not claimed:
                    continue
                signature.invited_at = now
                self.send_signature_request(document, signature)
                invited.append(signature)
        return invited

    def send_signature_request(self, document: Document, signature: Signature) -> OutboxMessage:
        return self.enqueue_email('signature_request', signature.signer_email, {
            'signer_name': signature.signer_name,
            'owner_name': owner_display_name(document),
            'document_title': document.title,
            'signing_url': self.config.signing_url(signature.token),
            'expires_at': format_datetime(signature.token_expires_at),
        }, document=document)

    def send_reminder(self, document: Document, signature: Signature) -> OutboxMessage:
        return self.enqueue_email('signature_reminder', signature.signer_email, {
            'signer_name': signature.signer_name,
            'document_title': document.title,
            'signing_url': self.config.signing_url(signature.token),
            'expires_at': format_datetime(signature.token_expires_at),
        }, document=document)

    def notify_owner_completed(self, document: Document) -> OutboxMessage:
        return self.enqueue_email('document_completed', document.owner.email, {
            'owner_name': owner_display_name(document),
            'document_title': document.title,
            'completed_at': format_datetime(document.completed_at),
        }, document=document)

    def notify_recipient_completed(self, document: Document, recipient: Recipient) -> OutboxMessage:
        return self.enqueue_email('recipient_completed', recipient.email, {
            'recipient_name': recipient.name or recipient.email,
            'document_title': document.title,
            'completed_at': format_datetime(document.completed_at),
        }, document=document)

    def notify_owner_declined(self, document: Document, signature: Signature, reason: Optional[str]) -> OutboxMessage:
        return self.enqueue_email('signature_declined', document.owner.email, {
            'owner_name': owner_display_name(document),
            'signer_name': signature.signer_name,
            'signer_email': signature.signer_email,
            'document_title': document.title,
            'reason': reason or '',
        }, document=document)

    def notify_signer_voided(self, document: Document, signature: Signature, reason: Optional[str]) -> OutboxMessage:
        return self.enqueue_email('document_voided', signature.signer_email, {
            'signer_name': signature.signer_name,
            'document_title': document.title,
            'reason': reason or '',
        }, document=document)

    def notify_signer_expired(self, document: Document, signature: Signature) -> OutboxMessage:
        return self.enqueue_email('expiration_notice', signature.signer_email, {
            'signer_name': signature.signer_name,
            'document_title': document.title,
            'expires_at': format_datetime(document.expires_at),
        }, document=document)

    def emit_event(self, event_type: str, document: Document, extra: Optional[Dict] = None) -> Optional[OutboxMessage]:
        payload = {
            'document_id': str(document.pk),
            'title': document.title,
            'status': document.status,
        }
        if extra:
            payload.update(extra)
        return self.enqueue_webhook(event_type, payload, document=document)
