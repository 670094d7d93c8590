"""
Access gate for socket handshakes.

Channels traffic never passes through Django's middleware stack, so the
websocket scope gets its own adapter around the same rule chain as
``ipd.middleware.AccessGateMiddleware``.  A denied handshake is closed
before any consumer is built.
"""
from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser
from django.http import QueryDict

from ipd.authentication import resolve_bearer
from ipd.gate import GateRequest, evaluate

# gate status -> websocket close code
CLOSE_CODES = {
    401: 4401,  # missing or wrong credential
    500: 4500,  # API_KEY not configured on the server
}


def _scope_headers(scope) -> dict:
    return {
        name.decode("latin1").lower(): value.decode("latin1")
        for name, value in scope.get("headers", [])
    }


class AccessGateMiddleware(BaseMiddleware):

    async def __call__(self, scope, receive, send):
        if scope.get("type") != "websocket":
            return await super().__call__(scope, receive, send)

        decision = await database_sync_to_async(self.decide)(scope)
        if not decision.allowed:
            # consume the websocket.connect event, then refuse the upgrade
            await receive()
            await send({"type": "websocket.close", "code": CLOSE_CODES.get(decision.status, 4403)})
            return None

        scope = dict(scope)
        scope["access_gate"] = decision
        scope["user"] = decision.identity[0] if decision.identity is not None else AnonymousUser()
        return await super().__call__(scope, receive, send)

    def decide(self, scope):
        headers = _scope_headers(scope)
        gate_request = GateRequest(
            method="GET",
            path=scope.get("path", ""),
            headers=headers,
            query=QueryDict(scope.get("query_string", b"")),
            identify=lambda: resolve_bearer(headers.get("authorization")),
        )
        return evaluate(gate_request)
