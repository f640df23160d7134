import logging
from rest_framework import mixins, viewsets, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiParameter, OpenApiExample
from drf_spectacular.types import OpenApiTypes
from apps.domain.models import Document
from apps.presentation.serializers import (
    AccessCodeSerializer, AuditEntrySerializer, DeclineSerializer, DelegateSerializer,
    DocumentCreateSerializer, DocumentFieldSerializer, DocumentSerializer, FieldLayoutUpdateSerializer,
    RecipientSerializer, RecipientsUpdateSerializer, SendSerializer, SignatureSerializer,
    SignSubmitSerializer, SigningContextSerializer, VoidSerializer
)
from apps.application.services.document_registry import DocumentRegistry
from apps.application.services.reminder_throttle import ReminderThrottle
from apps.application.services.signature_ledger import SignatureLedger
from apps.presentation.utils import error_response, get_client_ip

logger = logging.getLogger('apps')


@extend_schema(
    summary='Obter token de autenticação',
    description='Autentica um usuário com username e password e retorna um token. Use-o no header "Authorization: Token <token>".',
    tags=['Autenticação'],
    request={
        'application/json': {
            'type': 'object',
            'properties': {
                'username': {'type': 'string', 'example': 'admin'},
                'password': {'type': 'string', 'format': 'password', 'example': 'senha123'},
            },
            'required': ['username', 'password']
        }
    },
    responses={200: OpenApiTypes.OBJECT, 400: OpenApiTypes.OBJECT},
)
@api_view(['POST'])
@permission_classes([AllowAny])
def custom_obtain_auth_token(request):
    from django.contrib.auth import authenticate
    from rest_framework.authtoken.models import Token

    username = request.data.get('username')
    password = request.data.get('password')

    if username is None or password is None:
        return error_response('Por favor, forneça username e password')

    user = authenticate(username=username, password=password)

    if not user:
        return error_response('Credenciais inválidas')

    token, created = Token.objects.get_or_create(user=user)
    return Response({'token': token.key}, status=status.HTTP_200_OK)


@extend_schema_view(
    list=extend_schema(
        summary='Listar documentos',
        description='Lista paginada dos documentos do usuário autenticado. Filtro opcional por status.',
        tags=['Documents'],
        parameters=[
            OpenApiParameter('status', OpenApiTypes.STR, description='draft, pending, signed, void, expired'),
        ],
    ),
    create=extend_schema(
        summary='Criar rascunho',
        description='Registra um documento já enviado ao storage, com layout de campos e destinatários em cópia.',
        tags=['Documents'],
        request=DocumentCreateSerializer,
        responses={201: DocumentSerializer, 400: OpenApiTypes.OBJECT},
        examples=[
            OpenApiExample(
                'Contrato com dois signatários',
                value={
                    'title': 'Contrato de Prestação de Serviços',
                    'file_key': 'uploads/contrato.pdf',
                    'file_hash': 'a' * 64,
                    'document_fields': [
                        {'signer_email': 'joao@example.com', 'field_type': 'signature', 'page': 1,
                         'position_x': 100, 'position_y': 600, 'width': 180, 'height': 50},
                    ],
                    'recipients': [{'email': 'juridico@example.com', 'name': 'Jurídico'}],
                }
            ),
        ],
    ),
    retrieve=extend_schema(
        summary='Obter documento',
        description='Detalhes do documento com signatários, campos e destinatários.',
        tags=['Documents'],
    ),
    destroy=extend_schema(
        summary='Excluir documento',
        description='Documentos assinados não podem ser excluídos. Documentos pendentes exigem ?confirm=true.',
        tags=['Documents'],
        parameters=[
            OpenApiParameter('confirm', OpenApiTypes.BOOL, description='Confirma exclusão de documento pendente'),
        ],
    ),
)
class DocumentViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    serializer_class = DocumentSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return Document.objects.none()
        queryset = DocumentRegistry().list_documents(self.request.user, self.request.query_params.get('status'))
        return queryset.prefetch_related('signatures', 'recipients', 'fields')

    def create(self, request, *args, **kwargs):
        serializer = DocumentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        document = DocumentRegistry().create_document(
            owner=request.user,
            title=data['title'],
            file_key=data['file_key'],
            file_hash=data.get('file_hash', ''),
            fields=data.get('document_fields', []),
            recipients=data.get('recipients', []),
        )
        return Response(self.get_serializer(document).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        document = DocumentRegistry().get_document(pk, request.user)
        return Response(self.get_serializer(document).data)

    def destroy(self, request, pk=None):
        confirm = request.query_params.get('confirm', '').lower() in ('1', 'true', 'yes')
        DocumentRegistry().delete(pk, request.user, confirm=confirm)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        summary='Enviar para assinatura',
        description='Cria as assinaturas, gera os links e notifica apenas a primeira etapa de signatários.',
        tags=['Documents'],
        request=SendSerializer,
        responses={200: SignatureSerializer(many=True), 400: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
        examples=[
            OpenApiExample(
                'Assinatura sequencial',
                value={
                    'signers': [
                        {'email': 'joao@example.com', 'name': 'João Silva', 'order': 1},
                        {'email': 'maria@example.com', 'name': 'Maria Santos', 'order': 2},
                    ],
                    'expires_in_days': 7,
                }
            ),
        ],
    )
    @action(detail=True, methods=['post'])
    def send(self, request, pk=None):
        serializer = SendSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            signatures = DocumentRegistry().send(
                pk,
                request.user,
                serializer.validated_data['signers'],
                serializer.validated_data.get('expires_in_days'),
            )
        except ValueError as e:
            return error_response(str(e))

        return Response({
            'document_id': pk,
            'status': Document.PENDING,
            'signatures': SignatureSerializer(signatures, many=True).data,
        })

    @extend_schema(
        summary='Cancelar documento (void)',
        description='Cancela um documento pendente; assinaturas pendentes passam a recusadas e os signatários são avisados.',
        tags=['Documents'],
        request=VoidSerializer,
        responses={200: OpenApiTypes.OBJECT, 400: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
    )
    @action(detail=True, methods=['post'])
    def void(self, request, pk=None):
        serializer = VoidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        DocumentRegistry().void(pk, request.user, serializer.validated_data.get('reason') or None)
        return Response({'voided': True})

    @extend_schema(
        summary='Reenviar documento',
        description='Cria um novo rascunho com o mesmo arquivo, campos e cópias. Documentos pendentes são cancelados antes.',
        tags=['Documents'],
        request=None,
        responses={200: OpenApiTypes.OBJECT, 400: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
    )
    @action(detail=True, methods=['post'])
    def resend(self, request, pk=None):
        document = DocumentRegistry().resend(pk, request.user)
        return Response({'new_document_id': document.pk})

    @extend_schema(
        summary='Listar assinaturas',
        tags=['Documents'],
        responses={200: SignatureSerializer(many=True), 404: OpenApiTypes.OBJECT},
    )
    @action(detail=True, methods=['get'])
    def signatures(self, request, pk=None):
        signatures = DocumentRegistry().list_signatures(pk, request.user)
        return Response(SignatureSerializer(signatures, many=True).data)

    @extend_schema(
        summary='Enviar lembrete',
        description='Reenvia o convite a um signatário pendente. Intervalo mínimo de 24h entre lembretes.',
        tags=['Documents'],
        request=None,
        responses={200: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT, 429: OpenApiTypes.OBJECT},
    )
    @action(detail=True, methods=['post'], url_path=r'signatures/(?P<signature_pk>[^/.]+)/remind')
    def remind(self, request, pk=None, signature_pk=None):
        result = ReminderThrottle().remind(pk, signature_pk, request.user)
        return Response(result)

    @extend_schema(
        summary='Destinatários em cópia',
        description='GET lista; PUT substitui a lista (apenas rascunhos e pendentes).',
        tags=['Documents'],
        request=RecipientsUpdateSerializer,
        responses={200: RecipientSerializer(many=True), 400: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
    )
    @action(detail=True, methods=['get', 'put'])
    def recipients(self, request, pk=None):
        if request.method == 'GET':
            recipients = DocumentRegistry().list_recipients(pk, request.user)
        else:
            serializer = RecipientsUpdateSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            recipients = DocumentRegistry().set_recipients(pk, request.user, serializer.validated_data['recipients'])
        return Response(RecipientSerializer(recipients, many=True).data)

    @extend_schema(
        summary='Layout de campos',
        description='GET lista os campos posicionados; PUT substitui o layout inteiro (apenas rascunhos e pendentes).',
        tags=['Documents'],
        request=FieldLayoutUpdateSerializer,
        responses={200: DocumentFieldSerializer(many=True), 400: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
    )
    @action(detail=True, methods=['get', 'put'])
    def fields(self, request, pk=None):
        if request.method == 'GET':
            fields = DocumentRegistry().list_fields(pk, request.user)
        else:
            serializer = FieldLayoutUpdateSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            fields = DocumentRegistry().set_fields(pk, request.user, serializer.validated_data['document_fields'])
        return Response(DocumentFieldSerializer(fields, many=True).data)

    @extend_schema(
        summary='Trilha de auditoria',
        tags=['Documents'],
        responses={200: AuditEntrySerializer(many=True), 404: OpenApiTypes.OBJECT},
    )
    @action(detail=True, methods=['get'])
    def audit(self, request, pk=None):
        entries = DocumentRegistry().audit_trail(pk, request.user)
        return Response(AuditEntrySerializer(entries, many=True).data)

    @extend_schema(
        summary='Verificar integridade',
        description='Recalcula o SHA-256 do arquivo armazenado e compara com o hash registrado.',
        tags=['Documents'],
        responses={200: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
    )
    @action(detail=True, methods=['get'])
    def verify(self, request, pk=None):
        registry = DocumentRegistry()
        document = registry.get_document(pk, request.user)
        try:
            result = registry.verify_integrity(document.pk, request.user)
        except OSError as e:
            logger.error(f'Error reading stored file for document {document.pk}: {str(e)}')
            return error_response('Stored file could not be read', status.HTTP_502_BAD_GATEWAY)
        return Response(result)


class SigningViewSet(viewsets.ViewSet):
    """Endpoints públicos do signatário, autenticados pelo token do link."""

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary='Contexto de assinatura',
        description='Dados para a tela de assinatura. Quando não é a vez do signatário, retorna waiting_for_previous_signers=true.',
        tags=['Signing'],
        responses={200: SigningContextSerializer, 400: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT, 410: OpenApiTypes.OBJECT},
    )
    def retrieve(self, request, token=None):
        context = SignatureLedger().get_signing_context(token, ip_address=get_client_ip(request))
        return Response(SigningContextSerializer(context).data)

    @extend_schema(
        summary='Assinar',
        tags=['Signing'],
        request=SignSubmitSerializer,
        responses={
            200: OpenApiTypes.OBJECT, 400: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT,
            409: OpenApiTypes.OBJECT, 410: OpenApiTypes.OBJECT,
        },
    )
    def submit(self, request, token=None):
        serializer = SignSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = SignatureLedger().submit(
            token,
            data['signature_data'],
            data['signature_type'],
            data.get('field_values', []),
            ip_address=get_client_ip(request),
            user_agent=request.META.get('HTTP_USER_AGENT'),
        )
        return Response(result)

    @extend_schema(
        summary='Recusar assinatura',
        tags=['Signing'],
        request=DeclineSerializer,
        responses={200: OpenApiTypes.OBJECT, 400: OpenApiTypes.OBJECT},
    )
    def decline(self, request, token=None):
        serializer = DeclineSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = SignatureLedger().decline(
            token,
            serializer.validated_data.get('reason') or None,
            ip_address=get_client_ip(request),
        )
        return Response(result)

    @extend_schema(
        summary='Delegar assinatura',
        description='Transfere a assinatura para outra pessoa; o link anterior deixa de funcionar.',
        tags=['Signing'],
        request=DelegateSerializer,
        responses={200: OpenApiTypes.OBJECT, 400: OpenApiTypes.OBJECT, 410: OpenApiTypes.OBJECT},
    )
    def delegate(self, request, token=None):
        serializer = DelegateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = SignatureLedger().delegate(
                token,
                serializer.validated_data['email'],
                serializer.validated_data['name'],
                ip_address=get_client_ip(request),
            )
        except ValueError as e:
            return error_response(str(e))

        return Response({'delegated': result['delegated'], 'new_signer_email': result['new_signer_email']})

    @extend_schema(
        summary='Verificar código de acesso',
        tags=['Signing'],
        request=AccessCodeSerializer,
        responses={200: OpenApiTypes.OBJECT, 403: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
    )
    def access(self, request, token=None):
        serializer = AccessCodeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = SignatureLedger().verify_access_code(
            token,
            serializer.validated_data['code'],
            ip_address=get_client_ip(request),
        )
        return Response(result)
