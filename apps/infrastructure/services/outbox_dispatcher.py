import logging
from datetime import timedelta
from typing import Dict, Iterable, Optional
from django.utils import timezone
from apps.application.config import WorkflowConfig
from apps.domain.models import OutboxMessage
from apps.infrastructure.providers.factory import CollaboratorFactory

logger = logging.getLogger('apps')


class OutboxDispatcher:
    """Entrega as mensagens enfileiradas no outbox (e-mails e webhooks).

    Cada mensagem é reivindicada com um UPDATE condicional em `attempts`,
    então dois dispatchers concorrentes nunca entregam a mesma tentativa.
    A reivindicação já agenda a próxima tentativa; se o processo cair no
    meio da entrega, a mensagem volta a ficar disponível após o atraso.
    """

    RETRY_DELAYS = [timedelta(minutes=1), timedelta(minutes=5), timedelta(minutes=30)]

    def __init__(self, config: Optional[WorkflowConfig] = None, factory: Optional[CollaboratorFactory] = None):
        self.config = config or WorkflowConfig.from_settings()
        self.factory = factory or CollaboratorFactory()

    def _retry_delay(self, attempt: int) -> timedelta:
        return self.RETRY_DELAYS[min(attempt, len(self.RETRY_DELAYS) - 1)]

    def dispatch_pending(self, limit: Optional[int] = None) -> Dict[str, int]:
        limit = limit or self.config.outbox_batch_size
        message_ids = list(
            OutboxMessage.objects.filter(
                status=OutboxMessage.PENDING,
                next_attempt_at__lte=timezone.now(),
            ).order_by('next_attempt_at', 'id').values_list('id', flat=True)[:limit]
        )
        return self.dispatch_messages(message_ids)

    def dispatch_messages(self, message_ids: Iterable[int]) -> Dict[str, int]:
        counts = {'sent': 0, 'retrying': 0, 'failed': 0, 'skipped': 0}
        for message_id in message_ids:
            result = self.dispatch_message(message_id)
            counts[result] += 1
        return counts

    def dispatch_message(self, message_id: int) -> str:
        now = timezone.now()
        message = OutboxMessage.objects.filter(
            pk=message_id,
            status=OutboxMessage.PENDING,
            next_attempt_at__lte=now,
        ).first()
        if message is None:
            return 'skipped'

        claimed = OutboxMessage.objects.filter(
            pk=message.pk,
            status=OutboxMessage.PENDING,
            attempts=message.attempts,
        ).update(
            attempts=message.attempts + 1,
            next_attempt_at=now + self._retry_delay(message.attempts),
        )
        if not claimed:
            return 'skipped'
        message.attempts += 1

        try:
            self._deliver(message)
        except Exception as e:
            return self._record_failure(message, e)

        OutboxMessage.objects.filter(pk=message.pk).update(
            status=OutboxMessage.SENT,
            sent_at=timezone.now(),
            last_error=None,
        )
        return 'sent'

    def _deliver(self, message: OutboxMessage) -> None:
        if message.channel == OutboxMessage.EMAIL:
            self.factory.get_email_sender().send(message.template, message.recipient, message.payload)
        elif message.channel == OutboxMessage.WEBHOOK:
            emitter = self.factory.get_webhook_emitter(
                self.config.webhook_url,
                self.config.webhook_secret,
                self.config.webhook_timeout,
            )
            if emitter is None:
                raise ValueError('Webhook URL is not configured')
            emitter.emit(message.template, message.payload)
        else:
            raise ValueError(f'Unknown outbox channel: {message.channel}')

    def _record_failure(self, message: OutboxMessage, error: Exception) -> str:
        if message.attempts >= self.config.outbox_max_attempts:
            OutboxMessage.objects.filter(pk=message.pk).update(
                status=OutboxMessage.FAILED,
                last_error=str(error),
            )
            logger.error(
                f'Outbox message {message.pk} ({message.channel}:{message.template}) '
                f'failed permanently after {message.attempts} attempts: {str(error)}'
            )
            return 'failed'

        OutboxMessage.objects.filter(pk=message.pk).update(last_error=str(error))
        logger.warning(
            f'Outbox message {message.pk} attempt {message.attempts}/{self.config.outbox_max_attempts} '
            f'failed: {str(error)}'
        )
        return 'retrying'
