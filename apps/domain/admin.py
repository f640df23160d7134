from django.contrib import admin
from .models import AuditEntry, Document, DocumentField, FieldValue, OutboxMessage, Recipient, Signature


class SignatureInline(admin.TabularInline):
    model = Signature
    extra = 0
    fields = ['signer_email', 'signer_name', 'order', 'status', 'signed_at', 'declined_at']
    readonly_fields = fields
    can_delete = False


class RecipientInline(admin.TabularInline):
    model = Recipient
    extra = 0
    readonly_fields = ['notified_at']


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ['title', 'owner', 'status', 'expires_at', 'completed_at', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['title', 'file_key', 'owner__username', 'owner__email']
    readonly_fields = ['id', 'status', 'expires_at', 'voided_at', 'void_reason', 'completed_at', 'created_at', 'updated_at']
    inlines = [SignatureInline, RecipientInline]
    fieldsets = (
        ('Informações Básicas', {
            'fields': ('id', 'title', 'owner')
        }),
        ('Arquivo', {
            'fields': ('file_key', 'file_hash')
        }),
        ('Status', {
            'fields': ('status', 'expires_at', 'voided_at', 'void_reason', 'completed_at')
        }),
        ('Datas', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(Signature)
class SignatureAdmin(admin.ModelAdmin):
    list_display = ['signer_name', 'signer_email', 'document', 'order', 'status', 'created_at']
    list_filter = ['status', 'signature_type', 'created_at']
    search_fields = ['signer_name', 'signer_email', 'delegated_to_email']
    readonly_fields = ['id', 'token', 'token_expires_at', 'signed_at', 'ip_address', 'user_agent', 'created_at', 'updated_at']
    fieldsets = (
        ('Signatário', {
            'fields': ('id', 'document', 'signer_name', 'signer_email', 'order', 'status')
        }),
        ('Link de assinatura', {
            'fields': ('token', 'token_expires_at', 'invited_at', 'reminder_sent_at', 'access_code', 'access_code_verified_at'),
            'classes': ('collapse',)
        }),
        ('Assinatura', {
            'fields': ('signature_type', 'signed_at', 'ip_address', 'user_agent')
        }),
        ('Recusa e delegação', {
            'fields': ('decline_reason', 'declined_at', 'delegated_to_email', 'delegated_to_name', 'delegated_at'),
            'classes': ('collapse',)
        }),
        ('Datas', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(DocumentField)
class DocumentFieldAdmin(admin.ModelAdmin):
    list_display = ['document', 'field_type', 'page', 'signer_email', 'required']
    list_filter = ['field_type', 'required']
    search_fields = ['signer_email', 'label']


@admin.register(FieldValue)
class FieldValueAdmin(admin.ModelAdmin):
    list_display = ['field', 'signature', 'filled_at']
    readonly_fields = ['field', 'signature', 'value', 'filled_at']


@admin.register(AuditEntry)
class AuditEntryAdmin(admin.ModelAdmin):
    list_display = ['event_type', 'document', 'actor', 'ip_address', 'timestamp']
    list_filter = ['event_type', 'timestamp']
    search_fields = ['document__title', 'event_type']
    readonly_fields = ['document', 'event_type', 'actor', 'ip_address', 'metadata', 'timestamp']

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(OutboxMessage)
class OutboxMessageAdmin(admin.ModelAdmin):
    list_display = ['channel', 'template', 'recipient', 'status', 'attempts', 'next_attempt_at', 'sent_at']
    list_filter = ['channel', 'status', 'template']
    search_fields = ['recipient', 'template']
    readonly_fields = ['created_at', 'sent_at', 'last_error']
