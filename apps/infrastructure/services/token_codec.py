import logging
import secrets
from datetime import datetime
from typing import Dict
from django.core import signing
from django.utils import timezone
from apps.domain.errors import ErrorCode, WorkflowError

logger = logging.getLogger('apps')


class SigningTokenCodec:
    """Emite e verifica os tokens dos links públicos de assinatura.

    O token é um payload assinado (HMAC) com timestamp. A validade
    criptográfica é o prazo de negócio mais uma margem, de modo que um link
    vencido pelo prazo do documento ainda decodifica e pode ser reportado
    como EXPIRED em vez de link inválido.
    """

    def __init__(self, secret: str, salt: str, grace_days: int = 30):
        self.signer = signing.TimestampSigner(key=secret, salt=salt)
        self.grace_seconds = grace_days * 24 * 60 * 60

    def issue(self, signature_id, document_id, signer_email: str, expires_at: datetime) -> str:
        remaining = max(0, int((expires_at - timezone.now()).total_seconds()))
        payload = {
            'sid': str(signature_id),
            'did': str(document_id),
            'email': signer_email,
            'ttl': remaining + self.grace_seconds,
            'nonce': secrets.token_urlsafe(8),
        }
        return self.signer.sign_object(payload, compress=True)

    def verify(self, token: str) -> Dict:
        try:
            payload = self.signer.unsign_object(token)
            payload = self.signer.unsign_object(token, max_age=payload['ttl'])
            return {
                'signature_id': payload['sid'],
                'document_id': payload['did'],
                'signer_email': payload['email'],
            }
        except signing.SignatureExpired:
            logger.info('Signing token expired at codec level')
            raise WorkflowError(ErrorCode.NOT_FOUND, 'Invalid signing link')
        except (signing.BadSignature, KeyError, TypeError, ValueError):
            logger.warning('Rejected malformed or tampered signing token')
            raise WorkflowError(ErrorCode.NOT_FOUND, 'Invalid signing link')
