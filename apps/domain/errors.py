from enum import Enum
from typing import Dict, Optional


class ErrorCode(str, Enum):
    NOT_FOUND = 'NOT_FOUND'
    INVALID_STATUS = 'INVALID_STATUS'
    EXPIRED = 'EXPIRED'
    VOIDED = 'VOIDED'
    ALREADY_SIGNED = 'ALREADY_SIGNED'
    DECLINED = 'DECLINED'
    AWAITING_PREVIOUS_SIGNERS = 'AWAITING_PREVIOUS_SIGNERS'
    REMINDER_COOLDOWN = 'REMINDER_COOLDOWN'
    INVALID_CODE = 'INVALID_CODE'
    CANNOT_DELETE = 'CANNOT_DELETE'
    CONFIRMATION_REQUIRED = 'CONFIRMATION_REQUIRED'

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_CODE[self]


HTTP_STATUS_BY_CODE = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.INVALID_STATUS: 400,
    ErrorCode.EXPIRED: 410,
    ErrorCode.VOIDED: 410,
    ErrorCode.ALREADY_SIGNED: 400,
    ErrorCode.DECLINED: 400,
    ErrorCode.AWAITING_PREVIOUS_SIGNERS: 409,
    ErrorCode.REMINDER_COOLDOWN: 429,
    ErrorCode.INVALID_CODE: 403,
    ErrorCode.CANNOT_DELETE: 400,
    ErrorCode.CONFIRMATION_REQUIRED: 400,
}


class WorkflowError(Exception):
    """Falha de regra de negócio do fluxo de assinatura.

    Carrega o código da taxonomia fechada e o status HTTP correspondente;
    a camada de apresentação converte para o formato de resposta.
    """

    def __init__(self, code: ErrorCode, message: str, details: Optional[Dict] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    @property
    def status_code(self) -> int:
        return self.code.http_status

    def __str__(self):
        return f'{self.code.value}: {self.message}'
