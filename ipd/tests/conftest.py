import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from ipd.auth_views import issue_token
from ipd.models import User

API_KEY = 'test-key'


@pytest.fixture(autouse=True)
def _clear_cache():
    # login throttling counts live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_key(settings):
    settings.API_KEY = API_KEY
    return API_KEY


@pytest.fixture
def no_api_key(settings):
    settings.API_KEY = ''


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(
        username='nurse1',
        email='nurse1@patient.com',
        password='P@ssw0rd1',
        role='nurse',
        full_name='Nurse One',
        department='Ward 3',
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def key_client(api_key):
    c = APIClient()
    c.credentials(HTTP_X_API_KEY=api_key)
    return c


@pytest.fixture
def bearer_client(staff_user):
    c = APIClient()
    c.credentials(HTTP_AUTHORIZATION=f'Bearer {issue_token(staff_user)}')
    return c
