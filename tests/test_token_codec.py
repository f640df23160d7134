import time
import pytest
from datetime import timedelta
from unittest.mock import patch
from django.utils import timezone
from apps.domain.errors import ErrorCode, WorkflowError
from apps.infrastructure.services.token_codec import SigningTokenCodec


@pytest.fixture
def codec():
    return SigningTokenCodec(secret='codec-secret', salt='codec-salt', grace_days=30)


class TestSigningTokenCodec:
    def test_verify_returns_claims(self, codec):
        token = codec.issue('sig-1', 'doc-1', 'alice@example.com', timezone.now() + timedelta(days=7))

        claims = codec.verify(token)

        assert claims == {
            'signature_id': 'sig-1',
            'document_id': 'doc-1',
            'signer_email': 'alice@example.com',
        }

    def test_tokens_for_same_signature_are_distinct(self, codec):
        expires_at = timezone.now() + timedelta(days=7)

        first = codec.issue('sig-1', 'doc-1', 'alice@example.com', expires_at)
        second = codec.issue('sig-1', 'doc-1', 'alice@example.com', expires_at)

        assert first != second

    def test_tampered_token_is_rejected(self, codec):
        token = codec.issue('sig-1', 'doc-1', 'alice@example.com', timezone.now() + timedelta(days=7))
        tampered = token[:-2] + ('AA' if not token.endswith('AA') else 'BB')

        with pytest.raises(WorkflowError) as exc_info:
            codec.verify(tampered)

        assert exc_info.value.code == ErrorCode.NOT_FOUND

    def test_token_from_other_secret_is_rejected(self, codec):
        other = SigningTokenCodec(secret='another-secret', salt='codec-salt')
        token = other.issue('sig-1', 'doc-1', 'alice@example.com', timezone.now() + timedelta(days=7))

        with pytest.raises(WorkflowError) as exc_info:
            codec.verify(token)

        assert exc_info.value.code == ErrorCode.NOT_FOUND

    def test_garbage_is_rejected(self, codec):
        with pytest.raises(WorkflowError) as exc_info:
            codec.verify('not-a-token')

        assert exc_info.value.message == 'Invalid signing link'

    def test_codec_expiry_outlives_business_expiry(self, codec):
        token = codec.issue('sig-1', 'doc-1', 'alice@example.com', timezone.now() + timedelta(days=1))
        two_days_later = time.time() + 2 * 24 * 60 * 60

        with patch('django.core.signing.time.time', return_value=two_days_later):
            claims = codec.verify(token)

        assert claims['signature_id'] == 'sig-1'

    def test_codec_expired_token_is_invalid(self, codec):
        token = codec.issue('sig-1', 'doc-1', 'alice@example.com', timezone.now() + timedelta(days=1))
        past_grace = time.time() + 32 * 24 * 60 * 60

        with patch('django.core.signing.time.time', return_value=past_grace):
            with pytest.raises(WorkflowError) as exc_info:
                codec.verify(token)

        assert exc_info.value.code == ErrorCode.NOT_FOUND
