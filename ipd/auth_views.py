"""
Authentication views.

Issues the bearer tokens that the access gate accepts in place of the
shared API key.  Tokens are simplejwt access tokens; issuer, audience
and lifetime come from ``SIMPLE_JWT``.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.tokens import AccessToken

from ipd.serializers.auth import LoginSerializer

from .models import User

logger = logging.getLogger(__name__)


def issue_token(user: User) -> str:
    token = AccessToken.for_user(user)
    token['name'] = user.username
    token['role'] = user.role
    return str(token)


def _roles(user: User) -> list[str]:
    return [user.role]


# ---------------------------------------------------------------------
# Username (or email) / password login
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    login = s.validated_data['login']
    password = s.validated_data['password']

    user = authenticate(request, username=login, password=password)
    if user is None:
        by_email = User.objects.filter(email__iexact=login).first()
        if by_email is not None:
            user = authenticate(request, username=by_email.username, password=password)
    if user is None:
        logger.info("login failed for %r from %s", login, request.META.get('REMOTE_ADDR'))
        return Response({'ok': False, 'detail': 'Invalid credentials.'}, status=401)

    logger.info("login ok for user %s", user.id)
    return Response({
        'userName': user.username,
        'email': user.email,
        'token': issue_token(user),
        'roles': _roles(user),
    })

# ScopedRateThrottle reads throttle_scope from the wrapped APIView class
login_view.cls.throttle_scope = 'login'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    user: User = request.user  # type: ignore[assignment]
    return Response({
        'user': user.username,
        'email': user.email,
        'fullName': user.full_name,
        'department': user.department,
        'roles': _roles(user),
    })
