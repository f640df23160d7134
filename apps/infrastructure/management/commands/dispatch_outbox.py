import time
from django.core.management.base import BaseCommand
from apps.infrastructure.services.outbox_dispatcher import OutboxDispatcher


class Command(BaseCommand):
    help = 'Entrega as mensagens pendentes do outbox (e-mails e webhooks)'

    def add_arguments(self, parser):
        parser.add_argument('--limit', type=int, default=None, help='Máximo de mensagens por rodada')
        parser.add_argument('--loop', action='store_true', help='Continua executando em intervalos')
        parser.add_argument('--interval', type=int, default=30, help='Segundos entre rodadas com --loop')

    def handle(self, *args, **options):
        dispatcher = OutboxDispatcher()
        while True:
            counts = dispatcher.dispatch_pending(limit=options['limit'])
            self.stdout.write(
                f"sent={counts['sent']} retrying={counts['retrying']} "
                f"failed={counts['failed']} skipped={counts['skipped']}"
            )
            if not options['loop']:
                break
            time.sleep(options['interval'])
