import hmac
import logging
from datetime import datetime
from typing import Dict, List, Optional
from django.db import transaction
from django.utils import timezone
from apps.application.config import WorkflowConfig
from apps.application.services.audit_trail import record_event
from apps.application.services.completion_cascade import CompletionCascade
from apps.application.services.notification_service import NotificationService
from apps.application.services.ordering import OrderingResolver
from apps.domain.errors import ErrorCode, WorkflowError
from apps.domain.interfaces import StorageBackend
from apps.domain.models import AuditEntry, Document, DocumentField, FieldValue, Signature
from apps.infrastructure.providers.factory import CollaboratorFactory
from apps.infrastructure.services.token_codec import SigningTokenCodec

logger = logging.getLogger('apps')


class SignatureLedger:
    """Ações do signatário a partir do token do link público."""

    def __init__(
        self,
        config: Optional[WorkflowConfig] = None,
        codec: Optional[SigningTokenCodec] = None,
        notifications: Optional[NotificationService] = None,
        storage: Optional[StorageBackend] = None,
        resolver: Optional[OrderingResolver] = None,
        cascade: Optional[CompletionCascade] = None,
    ):
        self.config = config or WorkflowConfig.from_settings()
        self.codec = codec or SigningTokenCodec(
            self.config.token_secret, self.config.token_salt, self.config.token_grace_days
        )
        self.notifications = notifications or NotificationService(self.config)
        self.storage = storage or CollaboratorFactory().get_storage()
        self.resolver = resolver or OrderingResolver()
        self.cascade = cascade or CompletionCascade(self.config, self.notifications)

    def _resolve(self, token: str) -> Signature:
        claims = self.codec.verify(token)
        signature = Signature.objects.select_related('document', 'document__owner').filter(token=token).first()
        if signature is None or str(signature.pk) != claims['signature_id']:
            raise WorkflowError(ErrorCode.NOT_FOUND, 'Signature not found')
        return signature

    def _ensure_not_expired(self, signature: Signature, now: datetime) -> None:
        if signature.token_expires_at and signature.token_expires_at <= now:
            raise WorkflowError(
                ErrorCode.EXPIRED,
                'This signing link has expired',
                {'expired_at': signature.token_expires_at.isoformat()},
            )

    def _ensure_actionable(self, signature: Signature) -> None:
        if signature.document.status != Document.PENDING:
            raise WorkflowError(
                ErrorCode.INVALID_STATUS,
                f'Document is {signature.document.status}',
            )
        if signature.status != Signature.PENDING:
            raise WorkflowError(ErrorCode.INVALID_STATUS, 'Signature is not pending')

    def _siblings(self, document_id) -> List[Signature]:
        return list(Signature.objects.filter(document_id=document_id))

    def get_signing_context(self, token: str, ip_address: Optional[str] = None) -> Dict:
        signature = self._resolve(token)
        document = signature.document
        now = timezone.now()

        self._ensure_not_expired(signature, now)
        if document.status == Document.VOID:
            raise WorkflowError(ErrorCode.VOIDED, 'This document has been voided by the sender')
        if document.status == Document.EXPIRED:
            raise WorkflowError(ErrorCode.EXPIRED, 'This document has expired')
        if signature.status == Signature.SIGNED:
            raise WorkflowError(ErrorCode.ALREADY_SIGNED, 'You have already signed this document')
        if signature.status == Signature.DECLINED:
            raise WorkflowError(ErrorCode.DECLINED, 'You have declined to sign this document')

        waiting = not self.resolver.may_act(signature, self._siblings(document.pk))
        if not waiting:
            record_event(document, AuditEntry.DOCUMENT_VIEWED, ip_address=ip_address, metadata={
                'signature_id': str(signature.pk),
                'signer_email': signature.signer_email,
            })

        return {
            'signature_id': signature.pk,
            'document_id': document.pk,
            'document_title': document.title,
            'signer_email': signature.signer_email,
            'signer_name': signature.signer_name,
            'status': signature.status,
            'order': signature.order,
            'waiting_for_previous_signers': waiting,
            'access_code_required': bool(signature.access_code) and signature.access_code_verified_at is None,
            'expires_at': signature.token_expires_at,
            'document_url': self.storage.generate_presigned_url(document.file_key),
            'fields': list(signature.fields.all()),
        }

    def submit(
        self,
        token: str,
        signature_data: str,
        signature_type: str,
        field_values: Optional[List[Dict]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict:
        signature = self._resolve(token)
        document = signature.document
        now = timezone.now()

        self._ensure_not_expired(signature, now)
        self._ensure_actionable(signature)
        if not self.resolver.may_act(signature, self._siblings(document.pk)):
            raise WorkflowError(
                ErrorCode.AWAITING_PREVIOUS_SIGNERS,
                'Previous signers must complete their signatures first',
                {'order': signature.order},
            )
        if (
            self.config.enforce_access_code_on_submit
            and signature.access_code
            and signature.access_code_verified_at is None
        ):
            raise WorkflowError(ErrorCode.INVALID_CODE, 'Access code verification required')

        with transaction.atomic():
            updated = Signature.objects.filter(pk=signature.pk, status=Signature.PENDING).update(
                status=Signature.SIGNED,
                signature_data=signature_data,
                signature_type=signature_type,
                signed_at=now,
                ip_address=ip_address,
                user_agent=user_agent,
                updated_at=now,
            )
            if not updated:
                raise WorkflowError(ErrorCode.INVALID_STATUS, 'Signature is not pending')

            self._record_field_values(signature, field_values or [])
            record_event(document, AuditEntry.DOCUMENT_SIGNED, ip_address=ip_address, metadata={
                'signature_id': str(signature.pk),
                'signer_email': signature.signer_email,
                'signer_name': signature.signer_name,
                'signature_type': signature_type,
            })
            self.notifications.emit_event('signature.signed', document, {
                'signature_id': str(signature.pk),
                'signer_email': signature.signer_email,
            })

        completed = self.cascade.run(document.pk)
        if not completed:
            # Outra requisição pode ter concluído o documento em paralelo
            completed = Document.objects.filter(pk=document.pk, status=Document.SIGNED).exists()
        if not completed:
            self._notify_next_stage(document)

        logger.info(f'Signature {signature.pk} signed (document {document.pk}, completed={completed})')
        return {'signed': True, 'document_completed': completed}

    def _record_field_values(self, signature: Signature, field_values: List[Dict]) -> None:
        for item in field_values:
            field = DocumentField.objects.filter(pk=item.get('field_id'), document_id=signature.document_id).first()
            if field is None:
                raise WorkflowError(ErrorCode.NOT_FOUND, f'Field {item.get("field_id")} not found')
            if field.signature_id not in (None, signature.pk):
                raise WorkflowError(ErrorCode.INVALID_STATUS, f'Field {field.pk} belongs to another signer')
            if FieldValue.objects.filter(field=field).exists():
                raise WorkflowError(ErrorCode.INVALID_STATUS, f'Field {field.pk} is already filled')

            FieldValue.objects.create(field=field, signature=signature, value=str(item.get('value', '')))
            if field.signature_id is None:
                DocumentField.objects.filter(pk=field.pk).update(signature=signature)

    def _notify_next_stage(self, document: Document) -> List[Signature]:
        stage = self.resolver.next_stage(self._siblings(document.pk))
        invited = self.notifications.invite_signers(document, stage)
        if invited:
            logger.info(f'Next signing stage notified for document {document.pk}: {len(invited)} signer(s)')
        return invited

    def decline(self, token: str, reason: Optional[str] = None, ip_address: Optional[str] = None) -> Dict:
        signature = self._resolve(token)
        document = signature.document
        now = timezone.now()

        self._ensure_not_expired(signature, now)
        self._ensure_actionable(signature)

        with transaction.atomic():
            updated = Signature.objects.filter(pk=signature.pk, status=Signature.PENDING).update(
                status=Signature.DECLINED,
                decline_reason=reason,
                declined_at=now,
                updated_at=now,
            )
            if not updated:
                raise WorkflowError(ErrorCode.INVALID_STATUS, 'Signature is not pending')

            record_event(document, AuditEntry.DOCUMENT_DECLINED, ip_address=ip_address, metadata={
                'signature_id': str(signature.pk),
                'signer_email': signature.signer_email,
                'reason': reason,
            })
            self.notifications.notify_owner_declined(document, signature, reason)
            self.notifications.emit_event('signature.declined', document, {
                'signature_id': str(signature.pk),
                'signer_email': signature.signer_email,
                'reason': reason,
            })

        # Recusa não bloqueia a etapa seguinte
        self._notify_next_stage(document)

        logger.info(f'Signature {signature.pk} declined (document {document.pk})')
        return {'declined': True}

    def delegate(self, token: str, new_email: str, new_name: str, ip_address: Optional[str] = None) -> Dict:
        signature = self._resolve(token)
        document = signature.document
        now = timezone.now()

        self._ensure_not_expired(signature, now)
        self._ensure_actionable(signature)

        new_email = new_email.strip().lower()
        if new_email == signature.signer_email:
            raise ValueError('Cannot delegate to the current signer')
        if Signature.objects.filter(document_id=document.pk, signer_email=new_email).exists():
            raise ValueError('This person is already a signer on the document')

        expires_at = document.expires_at or signature.token_expires_at
        new_token = self.codec.issue(signature.pk, document.pk, new_email, expires_at)
        original_email = signature.signer_email
        original_name = signature.signer_name

        with transaction.atomic():
            updated = Signature.objects.filter(pk=signature.pk, status=Signature.PENDING, token=token).update(
                signer_email=new_email,
                signer_name=new_name,
                delegated_to_email=new_email,
                delegated_to_name=new_name,
                delegated_at=now,
                token=new_token,
                token_expires_at=expires_at,
                invited_at=None,
                reminder_sent_at=None,
                access_code_verified_at=None,
                updated_at=now,
            )
            if not updated:
                raise WorkflowError(ErrorCode.INVALID_STATUS, 'Signature is not pending')
            DocumentField.objects.filter(signature=signature).update(signer_email=new_email)

            record_event(document, AuditEntry.DOCUMENT_DELEGATED, ip_address=ip_address, metadata={
                'signature_id': str(signature.pk),
                'from': original_email,
                'original_signer_name': original_name,
                'to': new_email,
            })

            signature.refresh_from_db()
            if self.resolver.may_act(signature, self._siblings(document.pk)):
                self.notifications.invite_signers(document, [signature])
            else:
                # Recebe o link agora e o convite de novo quando a etapa chegar
                self.notifications.send_signature_request(document, signature)

        logger.info(f'Signature {signature.pk} delegated from {original_email} to {new_email}')
        return {'delegated': True, 'new_signer_email': new_email, 'signature': signature}

    def verify_access_code(self, token: str, code: str, ip_address: Optional[str] = None) -> Dict:
        signature = self._resolve(token)
        if not signature.access_code:
            return {'verified': True}

        if not hmac.compare_digest(signature.access_code.encode(), str(code or '').encode()):
            logger.warning(f'Incorrect access code for signature {signature.pk}')
            raise WorkflowError(ErrorCode.INVALID_CODE, 'Incorrect access code')

        Signature.objects.filter(pk=signature.pk).update(access_code_verified_at=timezone.now())
        record_event(signature.document, AuditEntry.ACCESS_VERIFIED, ip_address=ip_address, metadata={
            'signature_id': str(signature.pk),
        })
        return {'verified': True}
