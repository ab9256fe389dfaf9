import json
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import requests
from django.test import Client, TestCase
from django.utils import timezone

from apps.bookings import services as booking_services
from apps.bookings.models import Booking, BookingSource, BookingStatus
from apps.fleet.models import DumpsterType
from apps.identity.models import User, UserRole
from apps.integrations import services
from apps.integrations.models import ApiKey, Webhook, WebhookEvent
from apps.integrations.webhooks import SIGNATURE_HEADER, build_body, deliver_webhook, sign, verify_signature
from apps.organizations.models import Organization, OrganizationStatus, ServiceArea


def make_org():
    slug = f"org-{uuid4().hex[:8]}"
    org = Organization.objects.create(
        name=slug, slug=slug, business_name=slug, email=f"{slug}@test.com",
        phone="555", address="1 Main", city="KC", state="MO", zip="64101",
        tax_rate=Decimal('0.08'), status=OrganizationStatus.ACTIVE,
    )
    ServiceArea.objects.create(organization=org, zip_code="64101", delivery_fee=Decimal('75.00'))
    return org


def make_user(org, role=UserRole.ORG_ADMIN):
    return User.objects.create_user(
        email=f"user_{uuid4().hex[:8]}@test.com",
        password="longenough",
        first_name="Test",
        last_name="User",
        role=role,
        organization=org,
    )


def make_type(org):
    return DumpsterType.objects.create(
        organization=org,
        name="20 Yard Dumpster",
        size_yards=20,
        daily_rate=Decimal('65.00'),
        weekly_rate=Decimal('425.00'),
        weight_limit_tons=Decimal('4.00'),
    )


def booking_data(dumpster_type):
    return {
        'dumpster_type_id': dumpster_type.id,
        'customer_name': "Jane Doe",
        'customer_email': "jane@test.com",
        'customer_phone': "555",
        'delivery_address': "10 Elm St",
        'delivery_city': "Kansas City",
        'delivery_state': "MO",
        'delivery_zip': "64101",
        'delivery_date': timezone.localdate() + timedelta(days=5),
        'rental_days': 7,
    }


class ApiKeyManagementTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org = make_org()
        self.admin = make_user(self.org)

    def test_raw_key_returned_once(self):
        self.client.force_login(self.admin)
        response = self.client.post(
            '/api/api-keys', data=json.dumps({"name": "Website"}), content_type='application/json',
        )
        self.assertEqual(response.status_code, 201)
        raw_key = response.json()['key']
        self.assertTrue(raw_key.startswith("htk_"))

        api_key = ApiKey.objects.get(id=response.json()['id'])
        self.assertNotEqual(api_key.key_hash, raw_key)
        self.assertEqual(api_key.prefix, raw_key[:12])

        listed = self.client.get('/api/api-keys').json()
        self.assertEqual(len(listed), 1)
        self.assertNotIn('key', listed[0])
        self.assertNotIn('key_hash', listed[0])

    def test_revoked_key_stops_authenticating(self):
        api_key, raw_key = services.create_api_key(self.org.id, "Website")
        self.assertEqual(services.authenticate_api_key(raw_key).id, api_key.id)

        self.client.force_login(self.admin)
        response = self.client.delete(f'/api/api-keys/{api_key.id}')
        self.assertEqual(response.status_code, 200)

        api_key.refresh_from_db()
        self.assertFalse(api_key.is_active)
        self.assertIsNotNone(api_key.revoked_at)
        self.assertIsNone(services.authenticate_api_key(raw_key))

    def test_customer_cannot_manage_keys(self):
        self.client.force_login(make_user(self.org, role=UserRole.CUSTOMER))
        self.assertEqual(self.client.get('/api/api-keys').status_code, 403)

    def test_cannot_revoke_other_tenants_key(self):
        api_key, _ = services.create_api_key(make_org().id, "Theirs")
        self.client.force_login(self.admin)
        self.assertEqual(self.client.delete(f'/api/api-keys/{api_key.id}').status_code, 403)


class ExternalBookingApiTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org = make_org()
        self.dumpster_type = make_type(self.org)
        self.api_key, self.raw_key = services.create_api_key(self.org.id, "Website")
        delivery = timezone.localdate() + timedelta(days=5)
        self.payload = {
            "customerName": "Jane Doe",
            "customerEmail": "Jane@Test.com",
            "customerPhone": "816-555-0101",
            "deliveryAddress": "10 Elm St",
            "deliveryCity": "Kansas City",
            "deliveryState": "MO",
            "deliveryZipCode": "64101",
            "deliveryDate": f"{delivery.isoformat()}T00:00:00.000Z",
            "pickupDate": (delivery + timedelta(days=7)).isoformat(),
            "dumpsterTypeId": str(self.dumpster_type.id),
            "notes": "Leave by the garage",
        }

    def _post(self, payload, key=None):
        headers = {}
        if key is not None:
            headers['HTTP_X_API_KEY'] = key
        return self.client.post(
            '/api/v1/bookings', data=json.dumps(payload), content_type='application/json', **headers,
        )

    def test_missing_key(self):
        response = self._post(self.payload)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "Invalid API key"})

    def test_unknown_key(self):
        response = self._post(self.payload, key="htk_not-a-real-key")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "Invalid API key"})

    def test_creates_booking_in_key_organization(self):
        response = self._post(self.payload, key=self.raw_key)
        self.assertEqual(response.status_code, 201)

        data = response.json()
        self.assertIn('bookingNumber', data)
        self.assertEqual(data['status'], "pending")
        self.assertEqual(Decimal(data['totalAmount']), Decimal('540.00'))

        booking = Booking.objects.get(id=data['id'])
        self.assertEqual(booking.organization_id, self.org.id)
        self.assertEqual(booking.source, BookingSource.API)
        self.assertEqual(booking.customer_email, "jane@test.com")
        self.assertEqual(booking.special_instructions, "Leave by the garage")
        self.assertIsNone(booking.customer_id)

        self.api_key.refresh_from_db()
        self.assertIsNotNone(self.api_key.last_used_at)

    def test_validation_failure_details(self):
        del self.payload['customerEmail']
        response = self._post(self.payload, key=self.raw_key)
        self.assertEqual(response.status_code, 400)

        data = response.json()
        self.assertEqual(data['error'], "Validation failed")
        self.assertTrue(data['details'])
        self.assertIn('field', data['details'][0])
        self.assertIn('message', data['details'][0])

    def test_booking_rule_violation(self):
        self.payload['deliveryZipCode'] = "99999"
        response = self._post(self.payload, key=self.raw_key)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "ZIP code 99999 is outside the service area"})

    def test_dumpster_type_of_other_organization(self):
        self.payload['dumpsterTypeId'] = str(make_type(make_org()).id)
        response = self._post(self.payload, key=self.raw_key)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(Booking.objects.count(), 0)


class WebhookManagementTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org = make_org()
        self.client.force_login(make_user(self.org))

    def test_create_returns_secret_once(self):
        response = self.client.post(
            '/api/webhooks',
            data=json.dumps({"url": "https://hooks.example.com/bookings", "events": ["booking.created"]}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(len(data['secret']), 64)

        fetched = self.client.get(f"/api/webhooks/{data['id']}").json()
        self.assertNotIn('secret', fetched)

        rotated = self.client.post(f"/api/webhooks/{data['id']}/rotate-secret").json()
        self.assertNotEqual(rotated['secret'], data['secret'])

    def test_unknown_event_rejected(self):
        response = self.client.post(
            '/api/webhooks',
            data=json.dumps({"url": "https://hooks.example.com/x", "events": ["booking.exploded"]}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "Unknown webhook event: booking.exploded")

    def test_invalid_url_rejected(self):
        response = self.client.post(
            '/api/webhooks',
            data=json.dumps({"url": "ftp://example.com", "events": ["booking.created"]}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)

    def test_reactivation_resets_failures(self):
        webhook = services.create_webhook(self.org.id, "https://hooks.example.com/x", ["booking.created"])
        Webhook.objects.filter(id=webhook.id).update(is_active=False, failure_count=5)

        response = self.client.patch(
            f'/api/webhooks/{webhook.id}', data=json.dumps({"isActive": True}), content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['failure_count'], 0)


class WebhookDeliveryTest(TestCase):

    def setUp(self):
        self.org = make_org()
        self.dumpster_type = make_type(self.org)
        self.webhook = services.create_webhook(
            self.org.id,
            "https://hooks.example.com/bookings",
            [WebhookEvent.BOOKING_CREATED, WebhookEvent.BOOKING_CANCELLED],
        )

    def test_signature_round_trip(self):
        body = build_body(WebhookEvent.BOOKING_CREATED, {"id": "abc"})
        signature = sign("secret", body)
        self.assertTrue(verify_signature("secret", body, signature))
        self.assertFalse(verify_signature("other", body, signature))

    @patch('apps.integrations.webhooks.requests.post')
    def test_booking_created_is_delivered_after_commit(self, mock_post):
        mock_post.return_value.status_code = 200
        mock_post.return_value.ok = True

        with self.captureOnCommitCallbacks(execute=True):
            booking = booking_services.create_booking(self.org.id, booking_data(self.dumpster_type))
            mock_post.assert_not_called()

        self.assertEqual(mock_post.call_count, 1)
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], "https://hooks.example.com/bookings")

        body = kwargs['data'].decode()
        self.assertEqual(kwargs['headers'][SIGNATURE_HEADER], sign(self.webhook.secret, body))
        self.assertEqual(kwargs['headers']['X-Webhook-Event'], "booking.created")

        payload = json.loads(body)
        self.assertEqual(payload['event'], "booking.created")
        self.assertEqual(payload['data']['booking_number'], booking.booking_number)
        self.assertEqual(payload['data']['total_amount'], "540.00")

        self.webhook.refresh_from_db()
        self.assertEqual(self.webhook.last_status_code, 200)
        self.assertEqual(self.webhook.failure_count, 0)

    @patch('apps.integrations.webhooks.requests.post')
    def test_unsubscribed_event_is_not_sent(self, mock_post):
        booking = booking_services.create_booking(self.org.id, booking_data(self.dumpster_type))
        with self.captureOnCommitCallbacks(execute=True):
            booking_services.update_booking(booking.id, {'status': BookingStatus.CONFIRMED})
        mock_post.assert_not_called()

    @patch('apps.integrations.webhooks.requests.post')
    def test_cancellation_event(self, mock_post):
        mock_post.return_value.status_code = 204
        mock_post.return_value.ok = True
        booking = booking_services.create_booking(self.org.id, booking_data(self.dumpster_type))

        with self.captureOnCommitCallbacks(execute=True):
            booking_services.update_booking(booking.id, {'status': BookingStatus.CANCELLED})

        self.assertEqual(mock_post.call_args.kwargs['headers']['X-Webhook-Event'], "booking.cancelled")

    @patch('apps.integrations.webhooks.requests.post')
    def test_completion_event(self, mock_post):
        mock_post.return_value.status_code = 200
        mock_post.return_value.ok = True
        services.create_webhook(self.org.id, "https://hooks.example.com/done", [WebhookEvent.BOOKING_COMPLETED])
        booking = booking_services.create_booking(self.org.id, booking_data(self.dumpster_type))
        for status in (BookingStatus.CONFIRMED, BookingStatus.DELIVERED, BookingStatus.PICKED_UP):
            booking_services.update_booking(booking.id, {'status': status})

        with self.captureOnCommitCallbacks(execute=True):
            booking_services.update_booking(booking.id, {'status': BookingStatus.COMPLETED})

        self.assertEqual(mock_post.call_count, 1)
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], "https://hooks.example.com/done")
        self.assertEqual(kwargs['headers']['X-Webhook-Event'], "booking.completed")
        self.assertEqual(json.loads(kwargs['data'].decode())['data']['status'], "completed")

    @patch('apps.integrations.webhooks.requests.post')
    def test_failed_delivery_counts_failure(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("refused")
        self.assertFalse(deliver_webhook(self.webhook.id, "booking.created", "{}"))

        mock_post.side_effect = None
        mock_post.return_value.status_code = 500
        mock_post.return_value.ok = False
        self.assertFalse(deliver_webhook(self.webhook.id, "booking.created", "{}"))

        self.webhook.refresh_from_db()
        self.assertEqual(self.webhook.failure_count, 2)
        self.assertEqual(self.webhook.last_status_code, 500)

    @patch('apps.integrations.webhooks.requests.post')
    def test_inactive_webhook_skipped(self, mock_post):
        Webhook.objects.filter(id=self.webhook.id).update(is_active=False)
        self.assertFalse(deliver_webhook(self.webhook.id, "booking.created", "{}"))
        mock_post.assert_not_called()
