from pathlib import Path
from decouple import config
import dj_database_url

BASE_DIR = Path(__file__).resolve().parent.parent

LOGS_DIR = BASE_DIR / 'logs'
LOGS_DIR.mkdir(exist_ok=True)

SECRET_KEY = config('SECRET_KEY', default='django-insecure-change-in-production')

DEBUG = config('DEBUG', default=True, cast=bool)

allowed_hosts_env = config('ALLOWED_HOSTS', default=None)
if allowed_hosts_env:
    ALLOWED_HOSTS = [host.strip() for host in allowed_hosts_env.split(',')]
else:
    ALLOWED_HOSTS = ['localhost', '127.0.0.1', 'testserver']

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'rest_framework.authtoken',
    'corsheaders',
    'drf_spectacular',
    'apps.domain',
    'apps.application',
    'apps.infrastructure',
    'apps.presentation',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'esign_project.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'esign_project.wsgi.application'

# Banco de dados: DATABASE_URL (Postgres em produção), SQLite local por padrão
DATABASES = {
    'default': dj_database_url.parse(
        config('DATABASE_URL', default=f'sqlite:///{BASE_DIR / "db.sqlite3"}'),
        conn_max_age=600,
    )
}

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]

LANGUAGE_CODE = 'pt-br'

TIME_ZONE = 'America/Sao_Paulo'

USE_I18N = True

USE_TZ = True

STATIC_URL = 'static/'

MEDIA_ROOT = config('MEDIA_ROOT', default=str(BASE_DIR / 'media'))
MEDIA_URL = config('MEDIA_URL', default='/media/')

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.TokenAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 20,
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
    ],
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'EXCEPTION_HANDLER': 'apps.presentation.utils.workflow_exception_handler',
}

CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in config('CORS_ALLOWED_ORIGINS', default='http://localhost:3000').split(',')
    if origin.strip()
]
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_METHODS = [
    'DELETE',
    'GET',
    'OPTIONS',
    'PATCH',
    'POST',
    'PUT',
]
CORS_PREFLIGHT_MAX_AGE = 86400

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'file': {
            'level': 'INFO',
            'class': 'logging.FileHandler',
            'filename': BASE_DIR / 'logs' / 'django.log',
            'formatter': 'verbose',
        },
        'console': {
            'level': 'DEBUG',
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console', 'file'],
        'level': 'INFO',
    },
    'loggers': {
        'django': {
            'handlers': ['console', 'file'],
            'level': 'INFO',
            'propagate': False,
        },
        'apps': {
            'handlers': ['console', 'file'],
            'level': 'DEBUG',
            'propagate': False,
        },
    },
}

# E-mail
EMAIL_BACKEND = config('EMAIL_BACKEND', default='django.core.mail.backends.console.EmailBackend')
EMAIL_HOST = config('EMAIL_HOST', default='localhost')
EMAIL_PORT = config('EMAIL_PORT', default=25, cast=int)
EMAIL_HOST_USER = config('EMAIL_HOST_USER', default='')
EMAIL_HOST_PASSWORD = config('EMAIL_HOST_PASSWORD', default='')
EMAIL_USE_TLS = config('EMAIL_USE_TLS', default=False, cast=bool)
DEFAULT_FROM_EMAIL = config('DEFAULT_FROM_EMAIL', default='no-reply@esign.local')

# Fluxo de assinatura
APP_URL = config('APP_URL', default='http://localhost:3000')
SIGNING_TOKEN_SECRET = config('SIGNING_TOKEN_SECRET', default=SECRET_KEY)
SIGNING_TOKEN_SALT = config('SIGNING_TOKEN_SALT', default='esign.signing-token')
SIGNING_TOKEN_GRACE_DAYS = config('SIGNING_TOKEN_GRACE_DAYS', default=30, cast=int)
DEFAULT_EXPIRES_IN_DAYS = config('DEFAULT_EXPIRES_IN_DAYS', default=7, cast=int)
REMINDER_COOLDOWN_HOURS = config('REMINDER_COOLDOWN_HOURS', default=24, cast=int)
AUTO_REMINDER_WINDOW_HOURS = config('AUTO_REMINDER_WINDOW_HOURS', default=48, cast=int)
ENFORCE_ACCESS_CODE_ON_SUBMIT = config('ENFORCE_ACCESS_CODE_ON_SUBMIT', default=False, cast=bool)

# Outbox: thread (padrão), inline ou off (apenas enfileira; entrega via manage.py dispatch_outbox)
OUTBOX_DISPATCH_MODE = config('OUTBOX_DISPATCH_MODE', default='thread')
OUTBOX_MAX_ATTEMPTS = config('OUTBOX_MAX_ATTEMPTS', default=3, cast=int)
OUTBOX_BATCH_SIZE = config('OUTBOX_BATCH_SIZE', default=100, cast=int)

WEBHOOK_URL = config('WEBHOOK_URL', default=None)
WEBHOOK_SECRET = config('WEBHOOK_SECRET', default='')
WEBHOOK_TIMEOUT = config('WEBHOOK_TIMEOUT', default=30, cast=int)

# Swagger/OpenAPI Configuration
SPECTACULAR_SETTINGS = {
    'TITLE': 'E-Sign Workflow API',
    'DESCRIPTION': '''
    API para envio de documentos para assinatura eletrônica.

    ## Funcionalidades Principais

    - **Documentos**: criação de rascunhos, envio para assinatura, cancelamento (void), reenvio e exclusão
    - **Assinatura**: link público por token para visualizar, assinar, recusar ou delegar
    - **Ordem de assinatura**: signatários agrupados por etapa; cada etapa só é notificada quando a anterior termina
    - **Lembretes**: reenvio manual do convite com intervalo mínimo de 24h
    - **Cópias (CC)**: destinatários notificados uma única vez quando o documento é concluído
    - **Auditoria**: trilha de eventos por documento

    ## Autenticação

    Endpoints do proprietário usam autenticação por Token:

    1. Faça uma requisição POST para `/api/api-token-auth/` com `username` e `password`
    2. Use o token retornado no header: `Authorization: Token <seu-token>`

    Endpoints `/api/sign/{token}/` são públicos e autenticados pelo token do link de assinatura.

    ## Erros

    Todas as falhas de fluxo retornam `{"error", "code", "status", "details"}`.
    ''',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
    'TAGS': [
        {'name': 'Autenticação', 'description': 'Obtenção de tokens de acesso'},
        {'name': 'Documents', 'description': 'Gerenciamento de documentos e envio para assinatura'},
        {'name': 'Signing', 'description': 'Endpoints públicos do signatário'},
        {'name': 'Health', 'description': 'Verificação de saúde da API'},
    ],
    'SCHEMA_PATH_PREFIX': '/api/',
    'COMPONENT_SPLIT_REQUEST': True,
    'COMPONENT_NO_READ_ONLY_REQUIRED': True,
    'SWAGGER_UI_SETTINGS': {
        'deepLinking': True,
        'displayRequestDuration': True,
        'docExpansion': 'list',
        'filter': True,
    },
}
