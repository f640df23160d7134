from .email_sender import EmailSender
from .storage_backend import StorageBackend
from .webhook_emitter import WebhookEmitter

__all__ = [
    'EmailSender',
    'StorageBackend',
    'WebhookEmitter',
]
