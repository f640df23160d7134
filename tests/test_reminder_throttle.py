import pytest
from datetime import timedelta
from django.utils import timezone
from apps.application.services.notification_service import NotificationService
from apps.application.services.reminder_throttle import ReminderThrottle
from apps.domain.errors import ErrorCode, WorkflowError
from apps.domain.models import AuditEntry, Document, Signature
from tests.helpers import queued_emails, signature_for


@pytest.fixture
def throttle(workflow_config):
    return ReminderThrottle(workflow_config, NotificationService(workflow_config))


@pytest.mark.django_db
class TestRemind:
    def test_remind_pending_signer(self, throttle, sent_document, user):
        alice = signature_for(sent_document, 'alice@example.com')

        result = throttle.remind(sent_document.pk, alice.pk, user)
        alice.refresh_from_db()

        assert result['reminded'] is True
        assert result['reminder_sent_at'] == alice.reminder_sent_at
        assert queued_emails('signature_reminder') == ['alice@example.com']
        assert sent_document.audit_entries.filter(event_type=AuditEntry.DOCUMENT_REMINDED).count() == 1

    def test_second_reminder_within_cooldown(self, throttle, sent_document, user):
        alice = signature_for(sent_document, 'alice@example.com')
        throttle.remind(sent_document.pk, alice.pk, user)
        alice.refresh_from_db()

        with pytest.raises(WorkflowError) as exc_info:
            throttle.remind(sent_document.pk, alice.pk, user)

        assert exc_info.value.code == ErrorCode.REMINDER_COOLDOWN
        assert exc_info.value.status_code == 429
        expected = alice.reminder_sent_at + timedelta(hours=24)
        assert exc_info.value.details == {'next_available': expected.isoformat()}
        assert queued_emails('signature_reminder') == ['alice@example.com']

    def test_reminder_allowed_after_cooldown(self, throttle, sent_document, user):
        alice = signature_for(sent_document, 'alice@example.com')
        Signature.objects.filter(pk=alice.pk).update(reminder_sent_at=timezone.now() - timedelta(hours=25))

        throttle.remind(sent_document.pk, alice.pk, user)

        assert queued_emails('signature_reminder') == ['alice@example.com']

    def test_remind_signed_signature(self, throttle, ledger, sent_document, user):
        alice = signature_for(sent_document, 'alice@example.com')
        ledger.submit(alice.token, 'sig', 'typed')

        with pytest.raises(WorkflowError) as exc_info:
            throttle.remind(sent_document.pk, alice.pk, user)

        assert exc_info.value.code == ErrorCode.INVALID_STATUS

    def test_remind_on_voided_document(self, throttle, registry, sent_document, user):
        alice = signature_for(sent_document, 'alice@example.com')
        registry.void(sent_document.pk, user)

        with pytest.raises(WorkflowError) as exc_info:
            throttle.remind(sent_document.pk, alice.pk, user)

        assert exc_info.value.code == ErrorCode.INVALID_STATUS

    def test_remind_other_owner(self, throttle, sent_document, other_user):
        alice = signature_for(sent_document, 'alice@example.com')

        with pytest.raises(WorkflowError) as exc_info:
            throttle.remind(sent_document.pk, alice.pk, other_user)

        assert exc_info.value.code == ErrorCode.NOT_FOUND

    def test_remind_unknown_signature(self, throttle, sent_document, user):
        with pytest.raises(WorkflowError) as exc_info:
            throttle.remind(sent_document.pk, 'not-a-uuid', user)

        assert exc_info.value.code == ErrorCode.NOT_FOUND


@pytest.mark.django_db
class TestAutomaticReminders:
    def test_nothing_due_outside_window(self, throttle, sent_document):
        assert throttle.send_due_reminders() == 0

    def test_invited_signers_reminded_near_deadline(self, throttle, sent_document):
        now = sent_document.expires_at - timedelta(hours=24)

        assert throttle.send_due_reminders(now=now) == 2

        assert sorted(queued_emails('signature_reminder')) == ['alice@example.com', 'bob@example.com']
        entry = sent_document.audit_entries.filter(event_type=AuditEntry.DOCUMENT_REMINDED).first()
        assert entry.metadata['automatic'] is True

    def test_automatic_reminder_sent_once(self, throttle, sent_document):
        now = sent_document.expires_at - timedelta(hours=24)
        throttle.send_due_reminders(now=now)

        assert throttle.send_due_reminders(now=now + timedelta(hours=1)) == 0

    def test_expired_documents_skipped(self, throttle, sent_document):
        Document.objects.filter(pk=sent_document.pk).update(status=Document.EXPIRED)

        assert throttle.send_due_reminders(now=sent_document.expires_at - timedelta(hours=1)) == 0
