from django.db import models
from django.contrib.auth.models import User
from .document import Document


class AuditEntry(models.Model):
    DOCUMENT_CREATED = 'document.created'
    DOCUMENT_SENT = 'document.sent'
    DOCUMENT_VIEWED = 'document.viewed'
    DOCUMENT_SIGNED = 'document.signed'
    DOCUMENT_DECLINED = 'document.declined'
    DOCUMENT_DELEGATED = 'document.delegated'
    DOCUMENT_REMINDED = 'document.reminded'
    DOCUMENT_COMPLETED = 'document.completed'
    DOCUMENT_VOIDED = 'document.voided'
    DOCUMENT_RESENT = 'document.resent'
    DOCUMENT_EXPIRED = 'document.expired'
    ACCESS_VERIFIED = 'document.access_verified'

    document = models.ForeignKey(Document, on_delete=models.CASCADE, related_name='audit_entries')
    event_type = models.CharField(max_length=50)
    actor = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True)
    ip_address = models.GenericIPAddressField(blank=True, null=True)
    metadata = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_entries'
        ordering = ['timestamp', 'id']
        verbose_name_plural = 'audit entries'

    def __str__(self):
        return f"{self.event_type} @ {self.timestamp}"
