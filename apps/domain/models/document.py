import uuid
from django.db import models
from django.contrib.auth.models import User


class Document(models.Model):
    DRAFT = 'draft'
    PENDING = 'pending'
    SIGNED = 'signed'
    VOID = 'void'
    EXPIRED = 'expired'

    STATUS_CHOICES = [
        (DRAFT, 'Draft'),
        (PENDING, 'Pending'),
        (SIGNED, 'Signed'),
        (VOID, 'Void'),
        (EXPIRED, 'Expired'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='documents')
    title = models.CharField(max_length=255)
    file_key = models.CharField(max_length=500)
    file_hash = models.CharField(max_length=64, blank=True, default='')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=DRAFT)
    expires_at = models.DateTimeField(blank=True, null=True)
    voided_at = models.DateTimeField(blank=True, null=True)
    void_reason = models.TextField(blank=True, null=True)
    completed_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'documents'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.title} ({self.status})"
