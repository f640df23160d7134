from .document import Document
from .signature import Signature
from .document_field import DocumentField, FieldValue
from .recipient import Recipient
from .audit_entry import AuditEntry
from .outbox_message import OutboxMessage

__all__ = [
    'Document',
    'Signature',
    'DocumentField',
    'FieldValue',
    'Recipient',
    'AuditEntry',
    'OutboxMessage',
]
