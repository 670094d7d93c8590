"""
Access gate shared by HTTP requests and socket handshakes.

The gate is an ordered chain of small rule functions.  Each rule looks
at a :class:`GateRequest` and either returns a :class:`Decision` or
``None`` to abstain; the first decision wins.  The chain is:

1. CORS preflight (``OPTIONS``) passes unchecked.
2. A valid bearer JWT passes and supersedes the shared secret.
3. Views marked public (DRF ``AllowAny``) pass.
4. Paths outside ``/api/`` and ``/hubs/`` pass (static files, docs).
5. No ``API_KEY`` configured: 500, the gate never silently no-ops.
6. ``/hubs/``: ``x-api-key`` header or ``?access_token=`` query.
7. ``/api/``: ``x-api-key`` header only.

Transport specifics (Django requests vs. Channels scopes) live in the
two adapters, :mod:`ipd.middleware` and :mod:`ipd.realtime.middleware`.
"""
from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence

from django.conf import settings
from django.urls import Resolver404, resolve
from rest_framework.permissions import AllowAny

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GateConfig:
    api_key: str
    header: str
    query_param: str
    api_prefix: str
    hub_prefix: str

    @classmethod
    def from_settings(cls) -> "GateConfig":
        return cls(
            api_key=getattr(settings, "API_KEY", "") or "",
            header=settings.API_KEY_HEADER.lower(),
            query_param=settings.API_KEY_QUERY_PARAM,
            api_prefix=settings.GATE_API_PREFIX.lower(),
            hub_prefix=settings.GATE_HUB_PREFIX.lower(),
        )


@dataclass
class GateRequest:
    """Transport-neutral view of an inbound request or handshake.

    ``identify`` and ``is_public`` are evaluated lazily so that the
    bearer lookup (a DB hit) and URL resolution only happen when the
    chain actually reaches those rules.
    """
    method: str
    path: str
    headers: Mapping[str, str]
    query: Mapping[str, str]
    identify: Callable[[], Optional[tuple]] = lambda: None
    is_public: Callable[[], bool] = lambda: False

    @property
    def normalized_path(self) -> str:
        return (self.path or "").lower()


@dataclass(frozen=True)
class Decision:
    allowed: bool
    status: int
    reason: str
    rule: str
    via: Optional[str] = None
    # (user, validated token) when admitted by a bearer JWT
    identity: Any = None


def _allow(rule: str, *, via: Optional[str] = None, identity: Any = None) -> Decision:
    return Decision(allowed=True, status=200, reason="", rule=rule, via=via, identity=identity)


def _deny(rule: str, status: int, reason: str) -> Decision:
    return Decision(allowed=False, status=status, reason=reason, rule=rule)


def _matches(provided: Optional[str], expected: str) -> bool:
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


# ---------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------
def allow_preflight(request: GateRequest, config: GateConfig) -> Optional[Decision]:
    if (request.method or "").upper() == "OPTIONS":
        return _allow("preflight")
    return None


def allow_bearer(request: GateRequest, config: GateConfig) -> Optional[Decision]:
    identity = request.identify()
    if identity is not None:
        return _allow("bearer", via="bearer", identity=identity)
    return None


def allow_public(request: GateRequest, config: GateConfig) -> Optional[Decision]:
    if request.is_public():
        return _allow("public")
    return None


def skip_unprotected(request: GateRequest, config: GateConfig) -> Optional[Decision]:
    path = request.normalized_path
    if not (path.startswith(config.api_prefix) or path.startswith(config.hub_prefix)):
        return _allow("unprotected")
    return None


def require_configured_secret(request: GateRequest, config: GateConfig) -> Optional[Decision]:
    if not config.api_key.strip():
        return _deny("configuration", 500, "API key not configured.")
    return None


def check_hub_secret(request: GateRequest, config: GateConfig) -> Optional[Decision]:
    if not request.normalized_path.startswith(config.hub_prefix):
        return None
    if _matches(request.headers.get(config.header), config.api_key):
        return _allow("hub", via="header")
    # browsers cannot set headers on a websocket upgrade
    if _matches(request.query.get(config.query_param), config.api_key):
        return _allow("hub", via="query")
    return _deny("hub", 401, "Missing or invalid API key for chat hub.")


def check_api_secret(request: GateRequest, config: GateConfig) -> Optional[Decision]:
    if not request.normalized_path.startswith(config.api_prefix):
        return None
    if _matches(request.headers.get(config.header), config.api_key):
        return _allow("api", via="header")
    return _deny("api", 401, "Missing or invalid x-api-key.")


Rule = Callable[[GateRequest, GateConfig], Optional[Decision]]

RULES: tuple[Rule, ...] = (
    allow_preflight,
    allow_bearer,
    allow_public,
    skip_unprotected,
    require_configured_secret,
    check_hub_secret,
    check_api_secret,
)


def evaluate(request: GateRequest, config: Optional[GateConfig] = None,
             rules: Sequence[Rule] = RULES) -> Decision:
    """Run ``rules`` in order and return the first decision."""
    config = config or GateConfig.from_settings()
    decision = None
    for rule in rules:
        decision = rule(request, config)
        if decision is not None:
            break
    if decision is None:
        decision = _allow("default")

    if decision.allowed:
        logger.debug("gate allowed %s %s (rule=%s via=%s)", request.method, request.path, decision.rule, decision.via)
    else:
        logger.warning("gate denied %s %s with %s (rule=%s)", request.method, request.path, decision.status, decision.rule)
    return decision


def is_public_view(path_info: str) -> bool:
    """True when ``path_info`` resolves to a DRF view that allows anyone."""
    try:
        match = resolve(path_info)
    except Resolver404:
        return False
    view_cls = getattr(match.func, "cls", None)
    permission_classes = getattr(view_cls, "permission_classes", None) or ()
    return AllowAny in permission_classes
