import re
from rest_framework import serializers
from apps.application.config import WorkflowConfig
from apps.domain.models import AuditEntry, Document, DocumentField, Recipient, Signature

SHA256_PATTERN = re.compile(r'^[0-9a-f]{64}$')


class DocumentFieldSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(read_only=True, help_text='ID do campo')
    signer_email = serializers.EmailField(
        required=False,
        allow_null=True,
        help_text='E-mail do signatário responsável pelo campo'
    )
    field_type = serializers.ChoiceField(
        choices=DocumentField.FIELD_TYPE_CHOICES,
        default='signature',
        help_text='Tipo: signature, date, text, initials, checkbox'
    )
    signature = serializers.PrimaryKeyRelatedField(read_only=True, help_text='Assinatura vinculada ao campo')

    class Meta:
        model = DocumentField
        fields = [
            'id', 'signer_email', 'field_type', 'page', 'position_x', 'position_y',
            'width', 'height', 'required', 'label', 'order', 'signature'
        ]
        read_only_fields = ['id', 'signature']


class RecipientSerializer(serializers.ModelSerializer):
    email = serializers.EmailField(help_text='E-mail do destinatário em cópia')
    name = serializers.CharField(required=False, allow_blank=True, default='', help_text='Nome do destinatário')
    notified_at = serializers.DateTimeField(read_only=True, help_text='Quando a cópia foi notificada da conclusão')

    class Meta:
        model = Recipient
        fields = ['id', 'email', 'name', 'notified_at']
        read_only_fields = ['id', 'notified_at']


class SignatureSerializer(serializers.ModelSerializer):
    status = serializers.ChoiceField(
        choices=Signature.STATUS_CHOICES,
        read_only=True,
        help_text='Status: pending, signed, declined'
    )
    signing_url = serializers.SerializerMethodField(help_text='Link público de assinatura (apenas pendentes)')

    class Meta:
        model = Signature
        fields = [
            'id', 'signer_email', 'signer_name', 'order', 'status', 'signing_url',
            'token_expires_at', 'invited_at', 'signed_at', 'signature_type',
            'declined_at', 'decline_reason', 'delegated_to_email', 'delegated_to_name',
            'delegated_at', 'reminder_sent_at', 'created_at'
        ]
        read_only_fields = fields

    def get_signing_url(self, obj):
        if obj.status != Signature.PENDING or not obj.token:
            return None
        config = self.context.get('config') or WorkflowConfig.from_settings()
        return config.signing_url(obj.token)


class DocumentSerializer(serializers.ModelSerializer):
    status = serializers.ChoiceField(
        choices=Document.STATUS_CHOICES,
        read_only=True,
        help_text='Status: draft, pending, signed, void, expired'
    )
    signatures = SignatureSerializer(many=True, read_only=True, help_text='Signatários do documento')
    recipients = RecipientSerializer(many=True, read_only=True, help_text='Destinatários em cópia')
    document_fields = DocumentFieldSerializer(source='fields', many=True, read_only=True, help_text='Campos posicionados')

    class Meta:
        model = Document
        fields = [
            'id', 'title', 'file_key', 'file_hash', 'status', 'expires_at',
            'voided_at', 'void_reason', 'completed_at', 'signatures', 'recipients',
            'document_fields', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class DocumentCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255, help_text='Título do documento')
    file_key = serializers.CharField(max_length=500, help_text='Chave do arquivo no storage')
    file_hash = serializers.CharField(
        required=False,
        allow_blank=True,
        default='',
        help_text='SHA-256 (hex) do conteúdo do arquivo'
    )
    document_fields = DocumentFieldSerializer(many=True, required=False, help_text='Layout dos campos')
    recipients = RecipientSerializer(many=True, required=False, help_text='Destinatários em cópia')

    def validate_file_hash(self, value):
        value = value.strip().lower()
        if value and not SHA256_PATTERN.match(value):
            raise serializers.ValidationError('file_hash must be a hex-encoded SHA-256 digest')
        return value


class SignerInputSerializer(serializers.Serializer):
    email = serializers.EmailField(help_text='E-mail do signatário')
    name = serializers.CharField(max_length=200, help_text='Nome do signatário')
    order = serializers.IntegerField(
        required=False,
        min_value=1,
        help_text='Etapa de assinatura. Mesma ordem = assinatura em paralelo. Padrão: posição na lista'
    )
    access_code = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=32,
        help_text='Código de acesso exigido antes de assinar (opcional)'
    )


class SendSerializer(serializers.Serializer):
    signers = SignerInputSerializer(many=True, help_text='Lista de signatários (mínimo 1)')
    expires_in_days = serializers.IntegerField(
        required=False,
        min_value=1,
        max_value=365,
        help_text='Prazo para assinatura em dias (padrão 7)'
    )

    def validate_signers(self, value):
        if not value:
            raise serializers.ValidationError('At least one signer is required')
        emails = [signer['email'].lower() for signer in value]
        if len(set(emails)) != len(emails):
            raise serializers.ValidationError('Signer emails must be unique')
        return value


class VoidSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, help_text='Motivo do cancelamento')


class RecipientsUpdateSerializer(serializers.Serializer):
    recipients = RecipientSerializer(many=True, help_text='Lista completa de destinatários em cópia')


class FieldLayoutUpdateSerializer(serializers.Serializer):
    document_fields = DocumentFieldSerializer(many=True, help_text='Layout completo de campos (substitui o atual)')


class FieldValueInputSerializer(serializers.Serializer):
    field_id = serializers.IntegerField(help_text='ID do campo preenchido')
    value = serializers.CharField(allow_blank=True, help_text='Valor informado')


class SignSubmitSerializer(serializers.Serializer):
    signature_data = serializers.CharField(help_text='Assinatura (imagem em base64 ou texto digitado)')
    signature_type = serializers.ChoiceField(
        choices=Signature.TYPE_CHOICES,
        help_text='Tipo: drawn, typed, uploaded'
    )
    field_values = FieldValueInputSerializer(many=True, required=False, help_text='Valores dos campos')


class DeclineSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, help_text='Motivo da recusa')


class DelegateSerializer(serializers.Serializer):
    email = serializers.EmailField(help_text='E-mail de quem vai assinar no seu lugar')
    name = serializers.CharField(max_length=200, help_text='Nome de quem vai assinar no seu lugar')


class AccessCodeSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=32, help_text='Código de acesso informado pelo remetente')


class SigningContextSerializer(serializers.Serializer):
    signature_id = serializers.UUIDField()
    document_id = serializers.UUIDField()
    document_title = serializers.CharField()
    signer_email = serializers.EmailField()
    signer_name = serializers.CharField()
    status = serializers.CharField()
    order = serializers.IntegerField()
    waiting_for_previous_signers = serializers.BooleanField()
    access_code_required = serializers.BooleanField()
    expires_at = serializers.DateTimeField()
    document_url = serializers.CharField()
    document_fields = DocumentFieldSerializer(source='fields', many=True)


class AuditEntrySerializer(serializers.ModelSerializer):
    actor = serializers.PrimaryKeyRelatedField(read_only=True, help_text='Usuário responsável (nulo para signatários)')

    class Meta:
        model = AuditEntry
        fields = ['id', 'event_type', 'actor', 'ip_address', 'metadata', 'timestamp']
        read_only_fields = fields
