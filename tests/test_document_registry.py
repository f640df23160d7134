import hashlib
import pytest
from datetime import timedelta
from django.utils import timezone
from apps.domain.errors import ErrorCode, WorkflowError
from apps.domain.models import AuditEntry, Document, DocumentField, OutboxMessage, Recipient, Signature
from tests.helpers import queued_emails, signature_for


@pytest.mark.django_db
class TestCreateDocument:
    def test_create_draft_with_layout_and_recipients(self, registry, user):
        document = registry.create_document(
            owner=user,
            title='NDA',
            file_key='uploads/nda.pdf',
            file_hash='b' * 64,
            fields=[
                {'signer_email': 'Alice@Example.com', 'field_type': 'signature', 'page': 1,
                 'position_x': 10, 'position_y': 20, 'width': 100, 'height': 40},
            ],
            recipients=[{'email': 'cc@example.com', 'name': 'CC'}],
        )

        assert document.status == Document.DRAFT
        assert document.fields.get().signer_email == 'alice@example.com'
        assert document.recipients.get().email == 'cc@example.com'
        assert document.audit_entries.get().event_type == AuditEntry.DOCUMENT_CREATED


@pytest.mark.django_db
class TestSend:
    def test_send_creates_one_signature_per_signer(self, registry, document, user):
        signers = [
            {'email': 'A@example.com', 'name': 'A'},
            {'email': 'b@example.com', 'name': 'B'},
            {'email': 'c@example.com', 'name': 'C'},
        ]
        before = timezone.now()

        signatures = registry.send(document.pk, user, signers, 5)
        document.refresh_from_db()

        assert len(signatures) == 3
        assert Signature.objects.filter(document=document).count() == 3
        assert len({s.token for s in signatures}) == 3
        assert [s.order for s in signatures] == [1, 2, 3]
        assert signatures[0].signer_email == 'a@example.com'
        assert document.status == Document.PENDING
        expected = before + timedelta(days=5)
        assert abs((document.expires_at - expected).total_seconds()) < 5

    def test_send_tokens_are_valid(self, registry, document, user):
        signatures = registry.send(document.pk, user, [{'email': 'a@example.com', 'name': 'A'}])

        claims = registry.codec.verify(signatures[0].token)

        assert claims['signature_id'] == str(signatures[0].pk)
        assert claims['document_id'] == str(document.pk)
        assert claims['signer_email'] == 'a@example.com'

    def test_send_defaults_to_configured_expiry(self, registry, document, user):
        registry.send(document.pk, user, [{'email': 'a@example.com', 'name': 'A'}])
        document.refresh_from_db()

        remaining = document.expires_at - timezone.now()
        assert timedelta(days=6, hours=23) < remaining <= timedelta(days=7)

    def test_send_requires_draft(self, registry, sent_document, user):
        with pytest.raises(WorkflowError) as exc_info:
            registry.send(sent_document.pk, user, [{'email': 'x@example.com', 'name': 'X'}])

        assert exc_info.value.code == ErrorCode.INVALID_STATUS

    def test_send_requires_signers(self, registry, document, user):
        with pytest.raises(ValueError):
            registry.send(document.pk, user, [])

    def test_send_rejects_duplicate_signers(self, registry, document, user):
        with pytest.raises(ValueError):
            registry.send(document.pk, user, [
                {'email': 'a@example.com', 'name': 'A'},
                {'email': 'A@example.com', 'name': 'A again'},
            ])

    def test_send_by_other_owner_is_not_found(self, registry, document, other_user):
        with pytest.raises(WorkflowError) as exc_info:
            registry.send(document.pk, other_user, [{'email': 'a@example.com', 'name': 'A'}])

        assert exc_info.value.code == ErrorCode.NOT_FOUND

    def test_send_emails_only_first_stage(self, sent_document):
        assert sorted(queued_emails('signature_request')) == ['alice@example.com', 'bob@example.com']
        assert signature_for(sent_document, 'carol@example.com').invited_at is None

    def test_send_single_stage_emails_everyone(self, registry, document, user):
        registry.send(document.pk, user, [
            {'email': 'a@example.com', 'name': 'A', 'order': 1},
            {'email': 'b@example.com', 'name': 'B', 'order': 1},
        ])

        assert sorted(queued_emails('signature_request')) == ['a@example.com', 'b@example.com']

    def test_send_binds_fields_by_signer_email(self, sent_document):
        alice = signature_for(sent_document, 'alice@example.com')
        carol = signature_for(sent_document, 'carol@example.com')

        assert alice.fields.count() == 2
        assert carol.fields.count() == 1

    def test_send_writes_audit_entry(self, sent_document):
        entry = sent_document.audit_entries.get(event_type=AuditEntry.DOCUMENT_SENT)

        assert entry.metadata['signer_count'] == 3
        assert entry.actor == sent_document.owner


@pytest.mark.django_db
class TestVoid:
    def test_void_declines_pending_and_notifies(self, registry, document, user):
        registry.send(document.pk, user, [
            {'email': 'a@example.com', 'name': 'A'},
            {'email': 'b@example.com', 'name': 'B'},
        ])

        registry.void(document.pk, user, 'Wrong version')
        document.refresh_from_db()

        assert document.status == Document.VOID
        assert document.void_reason == 'Wrong version'
        assert document.voided_at is not None
        assert set(document.signatures.values_list('status', flat=True)) == {Signature.DECLINED}
        assert sorted(queued_emails('document_voided')) == ['a@example.com', 'b@example.com']
        assert document.audit_entries.filter(event_type=AuditEntry.DOCUMENT_VOIDED).count() == 1

    def test_void_keeps_signed_signatures(self, registry, ledger, sent_document, user):
        alice = signature_for(sent_document, 'alice@example.com')
        ledger.submit(alice.token, 'sig', 'typed')

        registry.void(sent_document.pk, user)

        alice.refresh_from_db()
        assert alice.status == Signature.SIGNED

    def test_void_requires_pending(self, registry, document, user):
        with pytest.raises(WorkflowError) as exc_info:
            registry.void(document.pk, user)

        assert exc_info.value.code == ErrorCode.INVALID_STATUS

    def test_void_twice_fails(self, registry, sent_document, user):
        registry.void(sent_document.pk, user)

        with pytest.raises(WorkflowError) as exc_info:
            registry.void(sent_document.pk, user)

        assert exc_info.value.code == ErrorCode.INVALID_STATUS


@pytest.mark.django_db
class TestResend:
    def test_resend_pending_voids_and_copies(self, registry, sent_document, user):
        copy = registry.resend(sent_document.pk, user)
        sent_document.refresh_from_db()

        assert sent_document.status == Document.VOID
        assert copy.pk != sent_document.pk
        assert copy.status == Document.DRAFT
        assert copy.file_key == sent_document.file_key
        assert copy.file_hash == sent_document.file_hash
        assert copy.signatures.count() == 0

    def test_resend_copies_layout_with_bindings_reset(self, registry, sent_document, user):
        copy = registry.resend(sent_document.pk, user)

        original = list(sent_document.fields.values_list('page', 'position_x', 'position_y', 'signer_email'))
        copied = list(copy.fields.values_list('page', 'position_x', 'position_y', 'signer_email'))
        assert copied == original
        assert not copy.fields.filter(signature__isnull=False).exists()

    def test_resend_copies_recipients_unnotified(self, registry, sent_document, user):
        sent_document.recipients.update(notified_at=timezone.now())

        copy = registry.resend(sent_document.pk, user)

        assert copy.recipients.count() == 2
        assert not copy.recipients.filter(notified_at__isnull=False).exists()

    @pytest.mark.parametrize('status', [Document.EXPIRED, Document.VOID, Document.SIGNED])
    def test_resend_terminal_documents(self, registry, document, user, status):
        Document.objects.filter(pk=document.pk).update(status=status)

        copy = registry.resend(document.pk, user)
        document.refresh_from_db()

        assert copy.status == Document.DRAFT
        assert document.status == status

    def test_resend_draft_fails(self, registry, document, user):
        with pytest.raises(WorkflowError) as exc_info:
            registry.resend(document.pk, user)

        assert exc_info.value.code == ErrorCode.INVALID_STATUS

    def test_resent_copy_can_be_sent(self, registry, sent_document, user, staged_signers):
        copy = registry.resend(sent_document.pk, user)

        signatures = registry.send(copy.pk, user, staged_signers)

        assert len(signatures) == 3
        assert copy.fields.filter(signature__isnull=False).count() == 3


@pytest.mark.django_db
class TestDelete:
    def test_delete_draft(self, registry, document, user, storage, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            registry.delete(document.pk, user)

        assert not Document.objects.filter(pk=document.pk).exists()
        assert storage.deleted == ['uploads/contrato.pdf']

    def test_delete_signed_fails(self, registry, document, user):
        Document.objects.filter(pk=document.pk).update(status=Document.SIGNED)

        with pytest.raises(WorkflowError) as exc_info:
            registry.delete(document.pk, user)

        assert exc_info.value.code == ErrorCode.CANNOT_DELETE
        assert Document.objects.filter(pk=document.pk).exists()

    def test_delete_pending_requires_confirmation(self, registry, sent_document, user):
        with pytest.raises(WorkflowError) as exc_info:
            registry.delete(sent_document.pk, user)

        assert exc_info.value.code == ErrorCode.CONFIRMATION_REQUIRED
        assert exc_info.value.details == {'pending_signatures': 3}

    def test_delete_pending_with_confirmation_cascades(self, registry, sent_document, user):
        registry.delete(sent_document.pk, user, confirm=True)

        assert not Signature.objects.filter(document_id=sent_document.pk).exists()
        assert not AuditEntry.objects.filter(document_id=sent_document.pk).exists()
        assert not Recipient.objects.filter(document_id=sent_document.pk).exists()

    def test_delete_keeps_file_shared_with_resent_copy(
        self, registry, sent_document, user, storage, django_capture_on_commit_callbacks
    ):
        registry.resend(sent_document.pk, user)

        with django_capture_on_commit_callbacks(execute=True):
            registry.delete(sent_document.pk, user)

        assert storage.deleted == []

    def test_delete_other_owner_is_not_found(self, registry, document, other_user):
        with pytest.raises(WorkflowError) as exc_info:
            registry.delete(document.pk, other_user)

        assert exc_info.value.code == ErrorCode.NOT_FOUND


@pytest.mark.django_db
class TestRecipientsAndIntegrity:
    def test_set_recipients_replaces_list(self, registry, document_with_layout, user):
        recipients = registry.set_recipients(document_with_layout.pk, user, [
            {'email': 'legal@example.com', 'name': 'Legal'},
            {'email': 'ops@example.com', 'name': 'Ops'},
        ])

        assert sorted(r.email for r in recipients) == ['legal@example.com', 'ops@example.com']

    def test_set_recipients_rejected_after_completion(self, registry, document, user):
        Document.objects.filter(pk=document.pk).update(status=Document.SIGNED)

        with pytest.raises(WorkflowError) as exc_info:
            registry.set_recipients(document.pk, user, [])

        assert exc_info.value.code == ErrorCode.INVALID_STATUS

    def test_verify_integrity(self, registry, document, user, storage):
        content = b'%PDF-1.7 contract'
        storage.files[document.file_key] = content
        Document.objects.filter(pk=document.pk).update(file_hash=hashlib.sha256(content).hexdigest())

        assert registry.verify_integrity(document.pk, user)['verified'] is True

    def test_verify_integrity_detects_tampering(self, registry, document, user, storage):
        storage.files[document.file_key] = b'changed'

        result = registry.verify_integrity(document.pk, user)

        assert result['verified'] is False
        assert result['expected_hash'] == 'a' * 64


@pytest.mark.django_db
class TestFieldLayout:
    LAYOUT = [
        {'signer_email': 'Alice@Example.com', 'field_type': 'signature', 'page': 1,
         'position_x': 50, 'position_y': 700, 'width': 180, 'height': 50},
        {'signer_email': 'bob@example.com', 'field_type': 'date', 'page': 2,
         'position_x': 60, 'position_y': 100, 'width': 100, 'height': 30, 'label': 'Data'},
    ]

    def test_list_fields(self, registry, document_with_layout, user):
        fields = registry.list_fields(document_with_layout.pk, user)

        assert [f.signer_email for f in fields] == ['alice@example.com', 'alice@example.com', 'carol@example.com']

    def test_set_fields_replaces_draft_layout(self, registry, document_with_layout, user):
        fields = list(registry.set_fields(document_with_layout.pk, user, self.LAYOUT))

        assert DocumentField.objects.filter(document=document_with_layout).count() == 2
        assert [f.signer_email for f in fields] == ['alice@example.com', 'bob@example.com']
        assert [f.order for f in fields] == [0, 1]
        assert fields[1].label == 'Data'
        assert all(f.signature_id is None for f in fields)

    def test_set_fields_on_pending_binds_existing_signatures(self, registry, sent_document, user):
        fields = list(registry.set_fields(sent_document.pk, user, self.LAYOUT))

        assert fields[0].signature_id == signature_for(sent_document, 'alice@example.com').pk
        assert fields[1].signature_id == signature_for(sent_document, 'bob@example.com').pk
        assert not signature_for(sent_document, 'carol@example.com').fields.exists()

    def test_set_fields_with_empty_layout(self, registry, document_with_layout, user):
        registry.set_fields(document_with_layout.pk, user, [])

        assert not DocumentField.objects.filter(document=document_with_layout).exists()

    @pytest.mark.parametrize('status', [Document.SIGNED, Document.VOID, Document.EXPIRED])
    def test_set_fields_rejected_on_closed_documents(self, registry, document_with_layout, user, status):
        Document.objects.filter(pk=document_with_layout.pk).update(status=status)

        with pytest.raises(WorkflowError) as exc_info:
            registry.set_fields(document_with_layout.pk, user, self.LAYOUT)

        assert exc_info.value.code == ErrorCode.INVALID_STATUS
        assert DocumentField.objects.filter(document=document_with_layout).count() == 3

    def test_fields_of_other_owner_are_not_found(self, registry, document_with_layout, other_user):
        with pytest.raises(WorkflowError) as exc_info:
            registry.set_fields(document_with_layout.pk, other_user, self.LAYOUT)
        assert exc_info.value.code == ErrorCode.NOT_FOUND

        with pytest.raises(WorkflowError) as exc_info:
            registry.list_fields(document_with_layout.pk, other_user)
        assert exc_info.value.code == ErrorCode.NOT_FOUND


@pytest.mark.django_db
class TestExpireOverdue:
    def test_expires_overdue_documents(self, registry, sent_document):
        Document.objects.filter(pk=sent_document.pk).update(expires_at=timezone.now() - timedelta(minutes=1))

        expired = registry.expire_overdue()
        sent_document.refresh_from_db()

        assert expired == 1
        assert sent_document.status == Document.EXPIRED
        assert not sent_document.signatures.filter(status=Signature.PENDING).exists()
        assert sorted(queued_emails('expiration_notice')) == [
            'alice@example.com', 'bob@example.com', 'carol@example.com'
        ]
        assert sent_document.audit_entries.filter(event_type=AuditEntry.DOCUMENT_EXPIRED).count() == 1

    def test_leaves_documents_within_deadline(self, registry, sent_document):
        assert registry.expire_overdue() == 0
        sent_document.refresh_from_db()
        assert sent_document.status == Document.PENDING

    def test_expiry_runs_once(self, registry, sent_document):
        Document.objects.filter(pk=sent_document.pk).update(expires_at=timezone.now() - timedelta(minutes=1))

        registry.expire_overdue()

        assert registry.expire_overdue() == 0
        assert OutboxMessage.objects.filter(template='expiration_notice').count() == 3
