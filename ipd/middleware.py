from django.http import HttpResponse

from .authentication import resolve_bearer
from .gate import GateRequest, evaluate, is_public_view


class AccessGateMiddleware:
    """Run the access gate before any view code.

    Denials are terminal: a ``text/plain`` 401 (bad or missing
    credential) or 500 (no ``API_KEY`` configured) is returned and the
    view never runs.  Admitted requests carry ``request.access_gate``.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        gate_request = GateRequest(
            method=request.method or '',
            path=request.path or '',
            headers=request.headers,
            query=request.GET,
            identify=lambda: resolve_bearer(request.META.get('HTTP_AUTHORIZATION')),
            is_public=lambda: is_public_view(request.path_info),
        )
        decision = evaluate(gate_request)
        if not decision.allowed:
            return HttpResponse(decision.reason, status=decision.status, content_type='text/plain; charset=utf-8')
        request.access_gate = decision
        return self.get_response(request)
