from .factory import CollaboratorFactory
from .email_sender import DjangoEmailSender
from .storage_backend import DjangoStorageBackend
from .webhook_emitter import HttpWebhookEmitter

__all__ = [
    'CollaboratorFactory',
    'DjangoEmailSender',
    'DjangoStorageBackend',
    'HttpWebhookEmitter',
]
