from django.db import models
from .document import Document


class Recipient(models.Model):
    document = models.ForeignKey(Document, on_delete=models.CASCADE, related_name='recipients')
    email = models.EmailField()
    name = models.CharField(max_length=200, blank=True, default='')
    notified_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'recipients'
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(fields=['document', 'email'], name='unique_recipient_per_document'),
        ]

    def __str__(self):
        return f"{self.name} <{self.email}>"
