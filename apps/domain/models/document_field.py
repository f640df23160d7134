from django.db import models
from .document import Document
from .signature import Signature


class DocumentField(models.Model):
    FIELD_TYPE_CHOICES = [
        ('signature', 'Signature'),
        ('date', 'Date'),
        ('text', 'Text'),
        ('initials', 'Initials'),
        ('checkbox', 'Checkbox'),
    ]

    document = models.ForeignKey(Document, on_delete=models.CASCADE, related_name='fields')
    signature = models.ForeignKey(
        Signature, on_delete=models.SET_NULL, related_name='fields', blank=True, null=True
    )
    signer_email = models.EmailField(blank=True, null=True)
    field_type = models.CharField(max_length=20, choices=FIELD_TYPE_CHOICES, default='signature')
    page = models.PositiveIntegerField(default=1)
    position_x = models.FloatField()
    position_y = models.FloatField()
    width = models.FloatField()
    height = models.FloatField()
    required = models.BooleanField(default=True)
    label = models.CharField(max_length=200, blank=True, null=True)
    order = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'document_fields'
        ordering = ['page', 'order', 'id']

    def __str__(self):
        return f"{self.field_type} p{self.page} ({self.signer_email or 'unassigned'})"


class FieldValue(models.Model):
    field = models.OneToOneField(DocumentField, on_delete=models.CASCADE, related_name='value')
    signature = models.ForeignKey(Signature, on_delete=models.CASCADE, related_name='field_values')
    value = models.TextField()
    filled_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'field_values'
        ordering = ['filled_at']

    def __str__(self):
        return f"{self.field_id}: {self.value[:40]}"
