"""
Custom permission classes.
"""
from rest_framework.permissions import BasePermission


class GateCleared(BasePermission):
    """Allow any request the access gate admitted.

    Chat endpoints serve both staff with a bearer token and shared-secret
    callers that have no user at all, so they only require that the gate
    (``ipd.middleware.AccessGateMiddleware``) let the request through.
    """
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        if user and user.is_authenticated:
            return True
        gate = getattr(request, "access_gate", None)
        return bool(gate and gate.allowed)
