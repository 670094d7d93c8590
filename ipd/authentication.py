"""
Bearer JWT authentication.

``resolve_bearer`` turns an ``Authorization`` header into a user and a
validated token (signature, issuer, audience and expiry are checked by
simplejwt using the ``SIMPLE_JWT`` settings).  Both access gate
adapters call it, and the DRF authentication class below reuses the
gate's result instead of decoding the token a second time.
"""
from __future__ import annotations

import logging
from typing import Optional, Union

from rest_framework import HTTP_HEADER_ENCODING
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt import authentication

logger = logging.getLogger(__name__)


def resolve_bearer(header: Optional[Union[str, bytes]]) -> Optional[tuple]:
    """Return ``(user, token)`` for a valid bearer header, else ``None``.

    A missing, malformed, expired or foreign token yields ``None`` so the
    caller can still be admitted by the shared secret.
    """
    if not header:
        return None
    if isinstance(header, str):
        header = header.encode(HTTP_HEADER_ENCODING)
    backend = authentication.JWTAuthentication()
    try:
        raw_token = backend.get_raw_token(header)
        if raw_token is None:
            return None
        token = backend.get_validated_token(raw_token)
        return backend.get_user(token), token
    except AuthenticationFailed as exc:
        logger.info("bearer token rejected: %s", exc.detail)
        return None


class JWTAuthentication(authentication.JWTAuthentication):
    """DRF authentication class for ``Authorization: Bearer <jwt>``.

    When the access gate already admitted the request, its verdict is
    authoritative: a bearer identity it resolved is reused, and a bad
    token on a request it admitted by shared secret is ignored rather
    than turned into a 401.
    """

    def authenticate(self, request):
        gate = getattr(request, 'access_gate', None)
        if gate is not None and gate.identity is not None:
            return gate.identity
        try:
            return super().authenticate(request)
        except AuthenticationFailed:
            if gate is not None and gate.allowed:
                return None
            raise
