import uuid
from datetime import timedelta

import jwt
import pytest
from django.conf import settings
from django.utils import timezone

from ipd.auth_views import issue_token
from ipd.gate import (
    GateConfig,
    GateRequest,
    allow_preflight,
    check_api_secret,
    evaluate,
    is_public_view,
)

CONFIG = GateConfig(api_key='s3cret', header='x-api-key', query_param='access_token',
                    api_prefix='/api/', hub_prefix='/hubs/')


def gate(path, *, method='GET', headers=None, query=None, identity=None, public=False, config=CONFIG):
    req = GateRequest(method=method, path=path, headers=headers or {}, query=query or {},
                      identify=lambda: identity, is_public=lambda: public)
    return evaluate(req, config)


def _jwt(user, **overrides):
    now = timezone.now()
    claims = {
        'token_type': 'access',
        'user_id': str(user.id),
        'jti': uuid.uuid4().hex,
        'iat': now,
        'exp': now + timedelta(hours=1),
        'iss': settings.SIMPLE_JWT['ISSUER'],
        'aud': settings.SIMPLE_JWT['AUDIENCE'],
    }
    claims.update(overrides)
    return jwt.encode(claims, settings.SIMPLE_JWT['SIGNING_KEY'], algorithm='HS256')


# ---------------------------------------------------------------------
# rule chain
# ---------------------------------------------------------------------
def test_preflight_always_passes():
    d = gate('/api/chat', method='OPTIONS', config=GateConfig('', 'x-api-key', 'access_token', '/api/', '/hubs/'))
    assert d.allowed and d.rule == 'preflight'


def test_bearer_supersedes_secret():
    d = gate('/api/chat', identity=('user', 'token'))
    assert d.allowed and d.via == 'bearer'
    assert d.identity == ('user', 'token')


def test_bearer_passes_even_without_configured_secret():
    d = gate('/hubs/chat', identity=('user', 'token'),
             config=GateConfig('', 'x-api-key', 'access_token', '/api/', '/hubs/'))
    assert d.allowed


def test_public_and_unprotected_paths_pass():
    assert gate('/api/auth/login', public=True).allowed
    assert gate('/healthz').allowed
    assert gate('/static/app.css').rule == 'unprotected'


@pytest.mark.parametrize('path', ['/api/chat', '/hubs/chat', '/API/Chat'])
def test_missing_secret_configuration_is_500(path):
    cfg = GateConfig('  ', 'x-api-key', 'access_token', '/api/', '/hubs/')
    d = gate(path, headers={'x-api-key': 'looks-plausible'}, query={'access_token': 'looks-plausible'}, config=cfg)
    assert not d.allowed
    assert d.status == 500
    assert d.reason == 'API key not configured.'


def test_hub_accepts_header_or_query():
    assert gate('/hubs/chat', headers={'x-api-key': 's3cret'}).via == 'header'
    assert gate('/hubs/chat', query={'access_token': 's3cret'}).via == 'query'

    d = gate('/hubs/chat', query={'access_token': 'nope'})
    assert (d.allowed, d.status, d.reason) == (False, 401, 'Missing or invalid API key for chat hub.')


def test_api_accepts_header_only():
    assert gate('/api/chat', headers={'x-api-key': 's3cret'}).allowed

    d = gate('/api/chat', query={'access_token': 's3cret'})
    assert (d.allowed, d.status, d.reason) == (False, 401, 'Missing or invalid x-api-key.')


def test_secret_comparison_is_exact():
    assert not gate('/api/chat', headers={'x-api-key': 's3cret '}).allowed
    assert not gate('/api/chat', headers={'x-api-key': 'S3CRET'}).allowed
    assert not gate('/api/chat', headers={'x-api-key': ''}).allowed


def test_prefix_match_is_case_insensitive():
    assert not gate('/Hubs/Chat').allowed


def test_custom_rule_sequence():
    req = GateRequest(method='GET', path='/api/chat', headers={}, query={})
    assert evaluate(req, CONFIG, rules=[allow_preflight, check_api_secret]).status == 401
    # nothing decides: the request is let through
    assert evaluate(req, CONFIG, rules=[allow_preflight]).rule == 'default'


def test_public_view_detection():
    assert is_public_view('/api/auth/login')
    assert not is_public_view('/api/chat')
    assert not is_public_view('/api/does-not-exist')


# ---------------------------------------------------------------------
# over HTTP
# ---------------------------------------------------------------------
@pytest.mark.django_db
def test_http_missing_key_is_401_plain_text(api_key, api_client):
    r = api_client.get('/api/chat')
    assert r.status_code == 401
    assert r['Content-Type'].startswith('text/plain')
    assert r.content.decode() == 'Missing or invalid x-api-key.'


@pytest.mark.django_db
def test_http_query_secret_not_accepted_for_api(api_key, api_client):
    r = api_client.get('/api/chat', {'access_token': api_key})
    assert r.status_code == 401


@pytest.mark.django_db
def test_http_key_header_passes(key_client):
    assert key_client.get('/api/chat').status_code == 200


@pytest.mark.django_db
def test_http_unconfigured_key_is_500(no_api_key, api_client):
    api_client.credentials(HTTP_X_API_KEY='test-key')
    r = api_client.get('/api/chat')
    assert r.status_code == 500
    assert r.content.decode() == 'API key not configured.'


@pytest.mark.django_db
def test_http_bearer_passes_without_key(no_api_key, bearer_client):
    assert bearer_client.get('/api/chat').status_code == 200


@pytest.mark.django_db
def test_http_bearer_passes_with_wrong_key(api_key, api_client, staff_user):
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {issue_token(staff_user)}', HTTP_X_API_KEY='wrong')
    assert api_client.get('/api/chat').status_code == 200


@pytest.mark.django_db
@pytest.mark.parametrize('bad', ['expired', 'audience', 'issuer', 'garbage'])
def test_http_bad_bearer_falls_back_to_key(bad, api_key, api_client, staff_user):
    past = timezone.now() - timedelta(days=1)
    token = {
        'expired': lambda: _jwt(staff_user, iat=past, exp=past + timedelta(minutes=5)),
        'audience': lambda: _jwt(staff_user, aud='SomebodyElse'),
        'issuer': lambda: _jwt(staff_user, iss='SomebodyElse'),
        'garbage': lambda: 'not-a-jwt',
    }[bad]()

    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    assert api_client.get('/api/chat').status_code == 401

    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}', HTTP_X_API_KEY=api_key)
    assert api_client.get('/api/chat').status_code == 200


@pytest.mark.django_db
def test_http_token_from_login_is_accepted(api_key, api_client, staff_user):
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {issue_token(staff_user)}')
    assert api_client.get('/api/chat').status_code == 200


@pytest.mark.django_db
def test_http_options_passes_without_credentials(api_key, api_client):
    assert api_client.options('/api/chat').status_code == 200


@pytest.mark.django_db
def test_http_login_is_public_even_without_key(no_api_key, api_client, staff_user):
    r = api_client.post('/api/auth/login', {'userName': 'nurse1', 'password': 'P@ssw0rd1'}, format='json')
    assert r.status_code == 200


@pytest.mark.django_db
def test_http_healthz_is_unprotected(api_key, api_client):
    r = api_client.get('/healthz')
    assert r.status_code == 200
    assert r.json()['ok'] is True
