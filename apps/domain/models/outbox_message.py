from django.db import models
from django.utils import timezone
from .document import Document


class OutboxMessage(models.Model):
    EMAIL = 'email'
    WEBHOOK = 'webhook'

    CHANNEL_CHOICES = [
        (EMAIL, 'Email'),
        (WEBHOOK, 'Webhook'),
    ]

    PENDING = 'pending'
    SENT = 'sent'
    FAILED = 'failed'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (SENT, 'Sent'),
        (FAILED, 'Failed'),
    ]

    channel = models.CharField(max_length=20, choices=CHANNEL_CHOICES)
    # Template de e-mail ou tipo do evento de webhook
    template = models.CharField(max_length=100)
    recipient = models.CharField(max_length=500, blank=True, default='')
    payload = models.JSONField(default=dict, blank=True)
    document = models.ForeignKey(
        Document, on_delete=models.SET_NULL, related_name='outbox_messages', blank=True, null=True
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    attempts = models.PositiveIntegerField(default=0)
    next_attempt_at = models.DateTimeField(default=timezone.now)
    last_error = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    sent_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        db_table = 'outbox_messages'
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['status', 'next_attempt_at'], name='outbox_status_next_idx'),
        ]

    def __str__(self):
        return f"{self.channel}:{self.template} -> {self.recipient} ({self.status})"
