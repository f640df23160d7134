import hashlib
import hmac
import json
import logging
from typing import Dict
import requests
from django.utils import timezone
from apps.domain.interfaces.webhook_emitter import WebhookEmitter

logger = logging.getLogger('apps')


class HttpWebhookEmitter(WebhookEmitter):
    def __init__(self, url: str, secret: str = '', timeout: int = 30):
        self.url = url
        self.secret = secret
        self.timeout = timeout

    def _sign(self, body: bytes) -> str:
        digest = hmac.new(self.secret.encode(), body, hashlib.sha256).hexdigest()
        return f'sha256={digest}'

    def emit(self, event_type: str, payload: Dict) -> None:
        body = json.dumps({
            'event': event_type,
            'data': payload,
            'timestamp': timezone.now().isoformat(),
        }, default=str).encode()
        headers = {
            'Content-Type': 'application/json',
            'X-Webhook-Event': event_type,
            'X-Webhook-Signature': self._sign(body),
        }

        try:
            response = requests.post(self.url, data=body, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            logger.error(f'Webhook {event_type} rejected by {self.url}: {e.response.status_code}')
            raise
        except requests.exceptions.RequestException as e:
            logger.error(f'Webhook {event_type} delivery to {self.url} failed: {str(e)}')
            raise

        logger.info(f'Webhook {event_type} delivered to {self.url}')
