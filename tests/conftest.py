import pytest
from django.contrib.auth.models import User
from rest_framework.test import APIClient
from rest_framework.authtoken.models import Token
from apps.application.config import WorkflowConfig
from apps.application.services.document_registry import DocumentRegistry
from apps.application.services.signature_ledger import SignatureLedger
from apps.domain.models import Document, DocumentField, Recipient


@pytest.fixture(autouse=True)
def workflow_settings(settings):
    settings.APP_URL = 'https://app.example.com'
    settings.SIGNING_TOKEN_SECRET = 'test-signing-secret'
    settings.OUTBOX_DISPATCH_MODE = 'off'
    settings.WEBHOOK_URL = None
    settings.ENFORCE_ACCESS_CODE_ON_SUBMIT = False
    settings.EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
    return settings


@pytest.fixture
def workflow_config(workflow_settings):
    return WorkflowConfig.from_settings()


@pytest.fixture
def user():
    return User.objects.create_user(
        username='testuser',
        email='owner@example.com',
        password='testpass123',
        first_name='Olivia',
        last_name='Owner'
    )


@pytest.fixture
def other_user():
    return User.objects.create_user(
        username='otheruser',
        email='other@example.com',
        password='testpass123'
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def auth_client(api_client, user):
    token = Token.objects.create(user=user)
    api_client.credentials(HTTP_AUTHORIZATION=f'Token {token.key}')
    return api_client


@pytest.fixture
def storage():
    class InMemoryStorage:
        def __init__(self):
            self.files = {}
            self.deleted = []

        def get_file_buffer(self, key):
            return self.files[key]

        def generate_presigned_url(self, key, expires_in=3600):
            return f'https://files.example.com/{key}?expires={expires_in}'

        def delete_file(self, key):
            self.deleted.append(key)
            self.files.pop(key, None)

    return InMemoryStorage()


@pytest.fixture
def registry(workflow_config, storage):
    return DocumentRegistry(config=workflow_config, storage=storage)


@pytest.fixture
def ledger(workflow_config, storage):
    return SignatureLedger(config=workflow_config, storage=storage)


@pytest.fixture
def document(user):
    return Document.objects.create(
        owner=user,
        title='Contrato de Serviços',
        file_key='uploads/contrato.pdf',
        file_hash='a' * 64,
    )


@pytest.fixture
def document_with_layout(document):
    DocumentField.objects.create(
        document=document, signer_email='alice@example.com', field_type='signature',
        page=1, position_x=100, position_y=600, width=180, height=50, order=0
    )
    DocumentField.objects.create(
        document=document, signer_email='alice@example.com', field_type='date',
        page=1, position_x=300, position_y=600, width=100, height=30, order=1
    )
    DocumentField.objects.create(
        document=document, signer_email='carol@example.com', field_type='signature',
        page=2, position_x=100, position_y=200, width=180, height=50, order=2
    )
    Recipient.objects.create(document=document, email='legal@example.com', name='Legal')
    Recipient.objects.create(document=document, email='finance@example.com', name='Finance')
    return document


@pytest.fixture
def staged_signers():
    return [
        {'email': 'alice@example.com', 'name': 'Alice', 'order': 1},
        {'email': 'bob@example.com', 'name': 'Bob', 'order': 1},
        {'email': 'carol@example.com', 'name': 'Carol', 'order': 2},
    ]


@pytest.fixture
def sent_document(registry, document_with_layout, user, staged_signers):
    registry.send(document_with_layout.pk, user, staged_signers, 7)
    document_with_layout.refresh_from_db()
    return document_with_layout

