from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
from django.conf import settings


@dataclass(frozen=True)
class WorkflowConfig:
    app_url: str
    token_secret: str
    token_salt: str
    token_grace_days: int
    default_expires_in_days: int
    reminder_cooldown: timedelta
    auto_reminder_window: timedelta
    enforce_access_code_on_submit: bool
    outbox_dispatch_mode: str
    outbox_max_attempts: int
    outbox_batch_size: int
    webhook_url: Optional[str]
    webhook_secret: str
    webhook_timeout: int

    @classmethod
    def from_settings(cls) -> 'WorkflowConfig':
        return cls(
            app_url=settings.APP_URL.rstrip('/'),
            token_secret=settings.SIGNING_TOKEN_SECRET,
            token_salt=settings.SIGNING_TOKEN_SALT,
            token_grace_days=settings.SIGNING_TOKEN_GRACE_DAYS,
            default_expires_in_days=settings.DEFAULT_EXPIRES_IN_DAYS,
            reminder_cooldown=timedelta(hours=settings.REMINDER_COOLDOWN_HOURS),
            auto_reminder_window=timedelta(hours=settings.AUTO_REMINDER_WINDOW_HOURS),
            enforce_access_code_on_submit=settings.ENFORCE_ACCESS_CODE_ON_SUBMIT,
            outbox_dispatch_mode=settings.OUTBOX_DISPATCH_MODE,
            outbox_max_attempts=settings.OUTBOX_MAX_ATTEMPTS,
            outbox_batch_size=settings.OUTBOX_BATCH_SIZE,
            webhook_url=settings.WEBHOOK_URL,
            webhook_secret=settings.WEBHOOK_SECRET,
            webhook_timeout=settings.WEBHOOK_TIMEOUT,
        )

    def signing_url(self, token: str) -> str:
        return f'{self.app_url}/sign/{token}'
