import logging

from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response

logger = logging.getLogger(__name__)

# headers DRF sets on error responses that clients rely on
PRESERVED_HEADERS = ('WWW-Authenticate', 'Retry-After')


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        # e.g. DatabaseError when the store is unavailable
        logger.error('unhandled API error in %s', context.get('view'), exc_info=exc)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': 'Internal server error.'}}, status=500)
    # normalize response
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = str(resp.data)
    out = Response({'ok': False, 'error': {'code': 'api_error', 'message': detail}}, status=resp.status_code)
    for header in PRESERVED_HEADERS:
        if header in resp:
            out[header] = resp[header]
    return out
