from typing import Optional
from rest_framework.response import Response
from rest_framework import status
from rest_framework.views import exception_handler
from apps.domain.errors import WorkflowError
import logging

logger = logging.getLogger('apps')


def error_response(
    message: str,
    status_code: int = status.HTTP_400_BAD_REQUEST,
    details: dict = None,
    code: Optional[str] = None,
) -> Response:
    response_data = {
        'error': message,
        'status': status_code
    }

    if code:
        response_data['code'] = code

    if details is not None:
        response_data['details'] = details

    if status_code >= 500:
        logger.error(f'Error response: {message} - {details}')
    else:
        logger.warning(f'Error response: {code or status_code} {message} - {details}')

    return Response(response_data, status=status_code)


def workflow_exception_handler(exc, context):
    if isinstance(exc, WorkflowError):
        return error_response(exc.message, exc.status_code, exc.details, code=exc.code.value)
    return exception_handler(exc, context)


def get_client_ip(request) -> Optional[str]:
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')
