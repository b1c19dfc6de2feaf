"""
Tests for the WebhookEvent admin.
"""

from unittest.mock import patch

import pytest
from django.contrib.admin.sites import AdminSite
from django.contrib.messages.storage.fallback import FallbackStorage
from django.test import RequestFactory

from payments.admin import WebhookEventAdmin
from payments.models import WebhookEvent
from payments.tests.factories import WebhookEventFactory


@pytest.mark.django_db
class TestWebhookEventAdmin:
    def _request(self):
        request = RequestFactory().post("/admin/payments/webhookevent/")
        request.session = {}
        request._messages = FallbackStorage(request)
        return request

    def test_requeue_skips_processed_events(self):
        failed = WebhookEventFactory(failed=True)
        WebhookEventFactory(processed=True)
        model_admin = WebhookEventAdmin(WebhookEvent, AdminSite())

        with patch("payments.admin.process_webhook_event.delay") as mock_delay:
            model_admin.requeue_events(self._request(), WebhookEvent.objects.all())

        mock_delay.assert_called_once_with(str(failed.id))

    def test_events_cannot_be_added(self):
        model_admin = WebhookEventAdmin(WebhookEvent, AdminSite())

        assert model_admin.has_add_permission(self._request()) is False
