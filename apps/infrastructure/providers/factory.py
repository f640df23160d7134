import hashlib
import threading
import logging
from typing import Dict, Optional
from apps.domain.interfaces import EmailSender, StorageBackend, WebhookEmitter
from .email_sender import DjangoEmailSender
from .storage_backend import DjangoStorageBackend
from .webhook_emitter import HttpWebhookEmitter

logger = logging.getLogger('apps')


class CollaboratorFactory:
    _instance = None
    _lock = threading.Lock()
    _cache: Dict[str, object] = {}

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(CollaboratorFactory, cls).__new__(cls)
        return cls._instance

    def _get(self, cache_key: str, builder):
        if cache_key not in self._cache:
            with self._lock:
                if cache_key not in self._cache:
                    self._cache[cache_key] = builder()
                    logger.debug(f'Collaborator {cache_key} created')
        return self._cache[cache_key]

    def get_email_sender(self) -> EmailSender:
        return self._get('email', DjangoEmailSender)

    def get_storage(self) -> StorageBackend:
        return self._get('storage', DjangoStorageBackend)

    def get_webhook_emitter(self, url: str, secret: str = '', timeout: int = 30) -> Optional[WebhookEmitter]:
        if not url:
            return None
        # Segredo entra na chave em hash
        secret_digest = hashlib.sha256(secret.encode()).hexdigest()[:16]
        return self._get(
            f'webhook:{url}:{timeout}:{secret_digest}',
            lambda: HttpWebhookEmitter(url, secret, timeout),
        )

    def clear_cache(self):
        with self._lock:
            self._cache.clear()
