import logging
from django.core.management.base import BaseCommand
from apps.application.services.document_registry import DocumentRegistry
from apps.application.services.reminder_throttle import ReminderThrottle

logger = logging.getLogger('apps')


class Command(BaseCommand):
    help = 'Expira documentos vencidos e envia lembretes automáticos próximos ao prazo'

    def handle(self, *args, **options):
        expired = DocumentRegistry().expire_overdue()
        reminded = ReminderThrottle().send_due_reminders()
        logger.info(f'Signing deadlines processed: {expired} expired, {reminded} reminded')
        self.stdout.write(self.style.SUCCESS(f'expired={expired} reminded={reminded}'))
