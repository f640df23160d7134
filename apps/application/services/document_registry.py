import hashlib
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone
from apps.application.config import WorkflowConfig
from apps.application.services.audit_trail import record_event
from apps.application.services.notification_service import NotificationService
from apps.application.services.ordering import OrderingResolver
from apps.domain.errors import ErrorCode, WorkflowError
from apps.domain.interfaces import StorageBackend
from apps.domain.models import AuditEntry, Document, DocumentField, Recipient, Signature
from apps.infrastructure.providers.factory import CollaboratorFactory
from apps.infrastructure.services.token_codec import SigningTokenCodec

logger = logging.getLogger('apps')

FIELD_LAYOUT_ATTRS = [
    'signer_email', 'field_type', 'page', 'position_x', 'position_y',
    'width', 'height', 'required', 'label', 'order',
]


class DocumentRegistry:
    RESENDABLE_STATUSES = [Document.PENDING, Document.EXPIRED, Document.VOID, Document.SIGNED]

    def __init__(
        self,
        config: Optional[WorkflowConfig] = None,
        codec: Optional[SigningTokenCodec] = None,
        notifications: Optional[NotificationService] = None,
        storage: Optional[StorageBackend] = None,
        resolver: Optional[OrderingResolver] = None,
    ):
        self.config = config or WorkflowConfig.from_settings()
        self.codec = codec or SigningTokenCodec(
            self.config.token_secret, self.config.token_salt, self.config.token_grace_days
        )
        self.notifications = notifications or NotificationService(self.config)
        self.storage = storage or CollaboratorFactory().get_storage()
        self.resolver = resolver or OrderingResolver()

    def get_document(self, document_id, owner: User) -> Document:
        # Inexistente e de outro proprietário respondem igual
        try:
            return Document.objects.select_related('owner').get(pk=document_id, owner=owner)
        except (Document.DoesNotExist, ValidationError, ValueError):
            raise WorkflowError(ErrorCode.NOT_FOUND, 'Document not found')

    def list_documents(self, owner: User, status: Optional[str] = None) -> QuerySet:
        queryset = Document.objects.filter(owner=owner)
        if status:
            queryset = queryset.filter(status=status)
        return queryset

    def create_document(
        self,
        owner: User,
        title: str,
        file_key: str,
        file_hash: str = '',
        fields: Optional[List[Dict]] = None,
        recipients: Optional[List[Dict]] = None,
    ) -> Document:
        with transaction.atomic():
            document = Document.objects.create(
                owner=owner,
                title=title,
                file_key=file_key,
                file_hash=file_hash,
                status=Document.DRAFT,
            )
            self._create_fields(document, fields or [])
            self._replace_recipients(document, recipients or [])
            record_event(document, AuditEntry.DOCUMENT_CREATED, actor=owner, metadata={'title': title})

        logger.info(f'Document {document.pk} created as draft')
        return document

    def send(self, document_id, owner: User, signers: List[Dict], expires_in_days: Optional[int] = None) -> List[Signature]:
        document = self.get_document(document_id, owner)
        if not signers:
            raise ValueError('At least one signer is required')

        emails = [signer['email'].strip().lower() for signer in signers]
        if len(set(emails)) != len(emails):
            raise ValueError('Signer emails must be unique')

        days = expires_in_days or self.config.default_expires_in_days
        now = timezone.now()
        expires_at = now + timedelta(days=days)

        with transaction.atomic():
            moved = Document.objects.filter(pk=document.pk, status=Document.DRAFT).update(
                status=Document.PENDING,
                expires_at=expires_at,
                updated_at=now,
            )
            if not moved:
                raise WorkflowError(ErrorCode.INVALID_STATUS, 'Only draft documents can be sent for signing')
            document.status = Document.PENDING
            document.expires_at = expires_at

            signatures = []
            for index, signer_data in enumerate(signers):
                signature = Signature(
                    document=document,
                    signer_email=emails[index],
                    signer_name=signer_data.get('name', ''),
                    order=signer_data.get('order') or index + 1,
                    access_code=signer_data.get('access_code') or None,
                    token_expires_at=expires_at,
                )
                signature.token = self.codec.issue(signature.pk, document.pk, signature.signer_email, expires_at)
                signature.save()
                DocumentField.objects.filter(
                    document=document,
                    signer_email=signature.signer_email,
                    signature__isnull=True,
                ).update(signature=signature)
                signatures.append(signature)

            record_event(document, AuditEntry.DOCUMENT_SENT, actor=owner, metadata={
                'signer_count': len(signatures),
                'expires_at': expires_at.isoformat(),
            })
            stage = self.resolver.first_stage(signatures)
            self.notifications.invite_signers(document, stage)
            self.notifications.emit_event('document.sent', document, {'signer_count': len(signatures)})

        logger.info(f'Document {document.pk} sent to {len(signatures)} signer(s), {len(stage)} notified')
        return signatures

    def void(self, document_id, owner: User, reason: Optional[str] = None) -> Document:
        document = self.get_document(document_id, owner)
        now = timezone.now()

        with transaction.atomic():
            moved = Document.objects.filter(pk=document.pk, status=Document.PENDING).update(
                status=Document.VOID,
                voided_at=now,
                void_reason=reason,
                updated_at=now,
            )
            if not moved:
                raise WorkflowError(ErrorCode.INVALID_STATUS, 'Only pending documents can be voided')
            document.refresh_from_db()

            affected = list(document.signatures.filter(status=Signature.PENDING))
            Signature.objects.filter(
                pk__in=[signature.pk for signature in affected],
                status=Signature.PENDING,
            ).update(status=Signature.DECLINED, declined_at=now, updated_at=now)

            record_event(document, AuditEntry.DOCUMENT_VOIDED, actor=owner, metadata={
                'reason': reason,
                'declined_signatures': len(affected),
            })
            for signature in affected:
                self.notifications.notify_signer_voided(document, signature, reason)
            self.notifications.emit_event('document.voided', document, {'reason': reason})

        logger.info(f'Document {document.pk} voided; {len(affected)} pending signature(s) declined')
        return document

    def resend(self, document_id, owner: User) -> Document:
        source = self.get_document(document_id, owner)
        if source.status not in self.RESENDABLE_STATUSES:
            raise WorkflowError(ErrorCode.INVALID_STATUS, f'Cannot resend a {source.status} document')

        with transaction.atomic():
            if source.status == Document.PENDING:
                source = self.void(source.pk, owner, reason='Document resent')

            copy = Document.objects.create(
                owner=source.owner,
                title=source.title,
                file_key=source.file_key,
                file_hash=source.file_hash,
                status=Document.DRAFT,
            )
            DocumentField.objects.bulk_create([
                DocumentField(document=copy, **{attr: getattr(field, attr) for attr in FIELD_LAYOUT_ATTRS})
                for field in source.fields.all()
            ])
            Recipient.objects.bulk_create([
                Recipient(document=copy, email=recipient.email, name=recipient.name)
                for recipient in source.recipients.all()
            ])

            record_event(source, AuditEntry.DOCUMENT_RESENT, actor=owner, metadata={
                'new_document_id': str(copy.pk),
            })
            record_event(copy, AuditEntry.DOCUMENT_CREATED, actor=owner, metadata={
                'title': copy.title,
                'resent_from': str(source.pk),
            })

        logger.info(f'Document {source.pk} resent as {copy.pk}')
        return copy

    def delete(self, document_id, owner: User, confirm: bool = False) -> None:
        document = self.get_document(document_id, owner)
        if document.status == Document.SIGNED:
            raise WorkflowError(ErrorCode.CANNOT_DELETE, 'Signed documents cannot be deleted')
        if document.status == Document.PENDING and not confirm:
            pending = document.signatures.filter(status=Signature.PENDING).count()
            raise WorkflowError(
                ErrorCode.CONFIRMATION_REQUIRED,
                'Document is out for signature; confirm to delete it and invalidate its signing links',
                {'pending_signatures': pending},
            )

        file_key = document.file_key
        with transaction.atomic():
            deleted, _ = Document.objects.filter(pk=document.pk).exclude(status=Document.SIGNED).delete()
            if not deleted:
                raise WorkflowError(ErrorCode.CANNOT_DELETE, 'Signed documents cannot be deleted')
            transaction.on_commit(lambda: self._cleanup_file(file_key))

        logger.info(f'Document {document_id} deleted by user {owner.pk}')

    def _cleanup_file(self, file_key: str) -> None:
        # Cópias criadas pelo reenvio compartilham o mesmo arquivo
        if Document.objects.filter(file_key=file_key).exists():
            logger.debug(f'File {file_key} still referenced; keeping it')
            return
        try:
            self.storage.delete_file(file_key)
        except Exception as e:
            logger.error(f'Error deleting stored file {file_key}: {str(e)}')

    def _create_fields(self, document: Document, fields: List[Dict], signatures: Optional[Dict] = None) -> None:
        signatures = signatures or {}
        for index, field_data in enumerate(fields):
            layout = {attr: field_data[attr] for attr in FIELD_LAYOUT_ATTRS if attr in field_data}
            layout.setdefault('order', index)
            if layout.get('signer_email'):
                layout['signer_email'] = layout['signer_email'].strip().lower()
            DocumentField.objects.create(
                document=document,
                signature=signatures.get(layout.get('signer_email')),
                **layout
            )

    def list_fields(self, document_id, owner: User) -> QuerySet:
        document = self.get_document(document_id, owner)
        return document.fields.all()

    def set_fields(self, document_id, owner: User, fields: List[Dict]) -> QuerySet:
        """Substitui todo o layout de campos (rascunhos e pendentes).

        Em documentos pendentes os novos campos são vinculados às assinaturas
        existentes pelo e-mail do signatário. Valores já preenchidos nos
        campos removidos são descartados junto com eles.
        """
        document = self.get_document(document_id, owner)
        if document.status not in [Document.DRAFT, Document.PENDING]:
            raise WorkflowError(
                ErrorCode.INVALID_STATUS,
                f'Fields can only be modified on draft or pending documents, not {document.status}',
            )

        with transaction.atomic():
            document.fields.all().delete()
            signatures = {signature.signer_email: signature for signature in document.signatures.all()}
            self._create_fields(document, fields, signatures)

        logger.info(f'Field layout of document {document.pk} replaced ({len(fields)} field(s))')
        return document.fields.all()

    def list_signatures(self, document_id, owner: User) -> QuerySet:
        document = self.get_document(document_id, owner)
        return document.signatures.all()

    def audit_trail(self, document_id, owner: User) -> QuerySet:
        document = self.get_document(document_id, owner)
        return document.audit_entries.all()

    def list_recipients(self, document_id, owner: User) -> QuerySet:
        document = self.get_document(document_id, owner)
        return document.recipients.all()

    def set_recipients(self, document_id, owner: User, recipients: List[Dict]) -> QuerySet:
        document = self.get_document(document_id, owner)
        if document.status not in [Document.DRAFT, Document.PENDING]:
            raise WorkflowError(ErrorCode.INVALID_STATUS, f'Cannot change recipients of a {document.status} document')

        with transaction.atomic():
            self._replace_recipients(document, recipients)
        return document.recipients.all()

    def _replace_recipients(self, document: Document, recipients: List[Dict]) -> None:
        wanted = {}
        for recipient in recipients:
            email = recipient['email'].strip().lower()
            wanted[email] = recipient.get('name', '')

        document.recipients.exclude(email__in=list(wanted)).delete()
        existing = set(document.recipients.values_list('email', flat=True))
        Recipient.objects.bulk_create([
            Recipient(document=document, email=email, name=name)
            for email, name in wanted.items()
            if email not in existing
        ])

    def verify_integrity(self, document_id, owner: User) -> Dict:
        document = self.get_document(document_id, owner)
        content = self.storage.get_file_buffer(document.file_key)
        actual = hashlib.sha256(content).hexdigest()
        return {
            'verified': bool(document.file_hash) and actual == document.file_hash,
            'expected_hash': document.file_hash,
            'actual_hash': actual,
        }

    def expire_overdue(self, now: Optional[datetime] = None) -> int:
        now = now or timezone.now()
        overdue = Document.objects.filter(
            status=Document.PENDING,
            expires_at__lte=now,
        ).select_related('owner')

        expired = 0
        for document in overdue:
            with transaction.atomic():
                moved = Document.objects.filter(pk=document.pk, status=Document.PENDING).update(
                    status=Document.EXPIRED,
                    updated_at=now,
                )
                if not moved:
                    continue
                document.status = Document.EXPIRED

                pending = list(document.signatures.filter(status=Signature.PENDING))
                Signature.objects.filter(
                    pk__in=[signature.pk for signature in pending],
                    status=Signature.PENDING,
                ).update(status=Signature.DECLINED, declined_at=now, updated_at=now)

                record_event(document, AuditEntry.DOCUMENT_EXPIRED, metadata={
                    'expired_at': document.expires_at.isoformat(),
                    'pending_signatures': len(pending),
                })
                for signature in pending:
                    self.notifications.notify_signer_expired(document, signature)
                self.notifications.emit_event('document.expired', document)
            expired += 1

        if expired:
            logger.info(f'{expired} document(s) expired')
        return expired
