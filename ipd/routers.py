"""
URL mappings for the IPD portal API.

Everything under ``api/`` sits behind the access gate; ``healthz`` and
``metrics`` do not.  Trailing slashes are deliberately omitted to match
the dashboard client.
"""
from django.urls import path, include

from .auth_views import login_view, me_view
from .views import health
from .views.chat import chat_by_patient, chat_message_detail, chat_messages


urlpatterns = [
    # django_prometheus.urls already serves 'metrics'
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),
    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/me', me_view, name='me_view'),
    # Chat
    path('api/chat', chat_messages, name='chat_messages'),
    path('api/chat/byPatient/<int:patient_id>', chat_by_patient, name='chat_by_patient'),
    path('api/chat/<int:pk>', chat_message_detail, name='chat_message_detail'),
]
