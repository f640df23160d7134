import uuid
from django.db import models
from .document import Document


class Signature(models.Model):
    PENDING = 'pending'
    SIGNED = 'signed'
    DECLINED = 'declined'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (SIGNED, 'Signed'),
        (DECLINED, 'Declined'),
    ]

    TYPE_CHOICES = [
        ('drawn', 'Drawn'),
        ('typed', 'Typed'),
        ('uploaded', 'Uploaded'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    document = models.ForeignKey(Document, on_delete=models.CASCADE, related_name='signatures')
    signer_email = models.EmailField()
    signer_name = models.CharField(max_length=200)
    order = models.PositiveIntegerField(default=1)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)

    token = models.TextField(unique=True, blank=True, null=True)
    token_expires_at = models.DateTimeField(blank=True, null=True)

    signature_data = models.TextField(blank=True, null=True)
    signature_type = models.CharField(max_length=20, choices=TYPE_CHOICES, blank=True, null=True)
    signed_at = models.DateTimeField(blank=True, null=True)
    ip_address = models.GenericIPAddressField(blank=True, null=True)
    user_agent = models.TextField(blank=True, null=True)

    decline_reason = models.TextField(blank=True, null=True)
    declined_at = models.DateTimeField(blank=True, null=True)

    delegated_to_email = models.EmailField(blank=True, null=True)
    delegated_to_name = models.CharField(max_length=200, blank=True, null=True)
    delegated_at = models.DateTimeField(blank=True, null=True)

    # Convite da etapa atual já enfileirado para o titular atual
    invited_at = models.DateTimeField(blank=True, null=True)
    reminder_sent_at = models.DateTimeField(blank=True, null=True)

    access_code = models.CharField(max_length=32, blank=True, null=True)
    access_code_verified_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'signatures'
        ordering = ['order', 'created_at']
        indexes = [
            models.Index(fields=['document', 'status'], name='signatures_doc_status_idx'),
        ]

    def __str__(self):
        return f"{self.signer_name} ({self.signer_email}) - {self.status}"
