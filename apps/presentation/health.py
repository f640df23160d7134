from django.db import connection
from django.db.models import Count
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework import status
from drf_spectacular.utils import extend_schema
from apps.domain.models import OutboxMessage


@extend_schema(
    summary='Health Check',
    description='Verifica a conectividade com o banco de dados e o acúmulo de mensagens no outbox.',
    tags=['Health'],
    responses={
        200: {
            'type': 'object',
            'properties': {
                'status': {
                    'type': 'string',
                    'example': 'ok',
                    'description': 'Status geral da API'
                },
                'database': {
                    'type': 'string',
                    'example': 'healthy',
                    'description': 'Status da conexão com o banco de dados (healthy/unhealthy)'
                },
                'outbox': {
                    'type': 'object',
                    'example': {'pending': 0, 'failed': 0},
                    'description': 'Mensagens aguardando entrega e falhas definitivas'
                }
            }
        }
    },
)
@api_view(['GET'])
@permission_classes([AllowAny])
def health_check(request):
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        db_status = "healthy"
    except Exception:
        db_status = "unhealthy"

    outbox = {'pending': 0, 'failed': 0}
    if db_status == "healthy":
        counts = OutboxMessage.objects.filter(
            status__in=[OutboxMessage.PENDING, OutboxMessage.FAILED]
        ).order_by().values('status').annotate(total=Count('id'))
        for row in counts:
            outbox[row['status']] = row['total']

    return Response({
        "status": "ok",
        "database": db_status,
        "outbox": outbox
    }, status=status.HTTP_200_OK)
