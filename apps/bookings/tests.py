"""
Tests for booking pricing, booking rules, the booking lifecycle,
payments, quotes and the dashboard.
"""
import json
from datetime import date, datetime, timedelta
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

from django.db.models import RestrictedError
from django.test import Client, TestCase
from django.utils import timezone

from apps.audit.models import AuditLog
from apps.bookings import services
from apps.bookings.models import Booking, BookingStatus, Payment, Quote, QuoteStatus
from apps.bookings.pricing import compute_price, rental_charge, to_cents
from apps.core.exceptions import DomainValidationError, InvalidTransitionError
from apps.fleet.models import DumpsterInventory, DumpsterStatus, DumpsterType
from apps.identity.models import User, UserRole
from apps.organizations.models import BlackoutDate, Organization, OrganizationStatus, ServiceArea


def make_org(tax_rate='0.08'):
    slug = f"org-{uuid4().hex[:8]}"
    org = Organization.objects.create(
        name=slug, slug=slug, business_name=slug, email=f"{slug}@test.com",
        phone="555", address="1 Main", city="KC", state="MO", zip="64101",
        tax_rate=Decimal(tax_rate), status=OrganizationStatus.ACTIVE,
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


def delivery_day(days_ahead=5):
    return timezone.localdate() + timedelta(days=days_ahead)


def at(*args):
    return timezone.make_aware(datetime(*args))


def booking_data(dumpster_type, **overrides):
    data = {
        'dumpster_type_id': dumpster_type.id,
        'customer_name': "Jane Doe",
        'customer_email': "jane@test.com",
        'customer_phone': "816-555-0101",
        'delivery_address': "10 Elm St",
        'delivery_city': "Kansas City",
        'delivery_state': "MO",
        'delivery_zip': "64101",
        'delivery_date': delivery_day(),
        'rental_days': 7,
    }
    data.update(overrides)
    return data


def booking_payload(dumpster_type, **overrides):
    payload = {
        "dumpsterTypeId": str(dumpster_type.id),
        "customerName": "Jane Doe",
        "customerEmail": "jane@test.com",
        "customerPhone": "816-555-0101",
        "deliveryAddress": "10 Elm St",
        "deliveryCity": "Kansas City",
        "deliveryState": "MO",
        "deliveryZip": "64101",
        "deliveryDate": delivery_day().isoformat(),
        "rentalDays": 7,
    }
    payload.update(overrides)
    return payload


class PricingTest(TestCase):

    def setUp(self):
        self.org = make_org()
        self.dumpster_type = make_type(self.org)

    def test_rental_charge(self):
        weekly, daily = Decimal('425.00'), Decimal('65.00')
        self.assertEqual(rental_charge(weekly, daily, 7), Decimal('425.00'))
        self.assertEqual(rental_charge(weekly, daily, 3), Decimal('195.00'))
        self.assertEqual(rental_charge(weekly, daily, 10), Decimal('620.00'))
        self.assertEqual(rental_charge(weekly, daily, 14), Decimal('850.00'))

    def test_leftover_days_capped_at_weekly_rate(self):
        self.assertEqual(rental_charge(Decimal('425.00'), Decimal('100.00'), 13), Decimal('850.00'))

    def test_rental_days_must_be_positive(self):
        with self.assertRaises(DomainValidationError):
            rental_charge(Decimal('425.00'), Decimal('65.00'), 0)

    def test_one_week_twenty_yard(self):
        price = compute_price(self.org, self.dumpster_type, 7, "64101")
        self.assertEqual(price.rental_charge, Decimal('425.00'))
        self.assertEqual(price.delivery_fee, Decimal('75.00'))
        self.assertEqual(price.subtotal, Decimal('500.00'))
        self.assertEqual(price.tax_amount, Decimal('40.00'))
        self.assertEqual(price.total_amount, Decimal('540.00'))

    def test_tax_rounds_half_up(self):
        self.assertEqual(to_cents(Decimal('10.005')), Decimal('10.01'))
        self.assertEqual(to_cents(Decimal('10.004')), Decimal('10.00'))

    def test_zip_outside_service_area(self):
        with self.assertRaises(DomainValidationError) as raised:
            compute_price(self.org, self.dumpster_type, 7, "99999")
        self.assertEqual(raised.exception.message, "ZIP code 99999 is outside the service area")

    def test_price_preview_endpoint(self):
        client = Client()
        client.force_login(make_user(self.org, role=UserRole.CUSTOMER))
        response = client.post(
            '/api/bookings/quote',
            data=json.dumps({"dumpsterTypeId": str(self.dumpster_type.id), "deliveryZip": "64101", "rentalDays": 7}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Decimal(response.json()['total_amount']), Decimal('540.00'))
        self.assertEqual(Booking.objects.count(), 0)


class BookingRulesTest(TestCase):

    def setUp(self):
        self.org = make_org()
        self.dumpster_type = make_type(self.org)

    def test_booking_stores_price_snapshot(self):
        booking = services.create_booking(self.org.id, booking_data(self.dumpster_type))
        self.assertEqual(booking.status, BookingStatus.PENDING)
        self.assertEqual(booking.pickup_date, delivery_day() + timedelta(days=7))
        self.assertEqual(booking.total_amount, Decimal('540.00'))
        self.assertEqual(booking.balance_due, Decimal('540.00'))
        self.assertEqual(booking.base_rate, Decimal('425.00'))
        self.assertTrue(booking.booking_number.startswith("BK-"))

        self.dumpster_type.weekly_rate = Decimal('500.00')
        self.dumpster_type.save()
        booking.refresh_from_db()
        self.assertEqual(booking.total_amount, Decimal('540.00'))

    def test_rental_days_derived_from_pickup_date(self):
        data = booking_data(self.dumpster_type, rental_days=None, pickup_date=delivery_day() + timedelta(days=10))
        booking = services.create_booking(self.org.id, data)
        self.assertEqual(booking.rental_days, 10)
        self.assertEqual(booking.subtotal, Decimal('695.00'))

    def test_pickup_must_follow_delivery(self):
        data = booking_data(self.dumpster_type, rental_days=None, pickup_date=delivery_day())
        with self.assertRaises(DomainValidationError) as raised:
            services.create_booking(self.org.id, data)
        self.assertEqual(raised.exception.message, "Pickup date must be after delivery date")

    def test_minimum_rental_days(self):
        with self.assertRaises(DomainValidationError) as raised:
            services.create_booking(self.org.id, booking_data(self.dumpster_type, rental_days=3))
        self.assertEqual(raised.exception.message, "Minimum rental period is 7 days")

    def test_lead_time(self):
        data = booking_data(self.dumpster_type, delivery_date=delivery_day(1))
        with self.assertRaises(DomainValidationError) as raised:
            services.create_booking(self.org.id, data)
        self.assertEqual(raised.exception.message, "Deliveries must be booked at least 48 hours in advance")

    def test_lead_time_counts_from_start_of_delivery_day(self):
        with patch('django.utils.timezone.now', return_value=at(2026, 10, 18, 12)):
            with self.assertRaises(DomainValidationError):
                services.create_booking(
                    self.org.id, booking_data(self.dumpster_type, delivery_date=date(2026, 10, 20))
                )

            booking = services.create_booking(
                self.org.id, booking_data(self.dumpster_type, delivery_date=date(2026, 10, 21))
            )
        self.assertEqual(booking.delivery_date, date(2026, 10, 21))

    def test_blackout_date(self):
        BlackoutDate.objects.create(organization=self.org, date=delivery_day(), reason="Holiday")
        with self.assertRaises(DomainValidationError) as raised:
            services.create_booking(self.org.id, booking_data(self.dumpster_type))
        self.assertEqual(raised.exception.message, "Deliveries are not available on the selected date")

    def test_zip_outside_service_area(self):
        with self.assertRaises(DomainValidationError):
            services.create_booking(self.org.id, booking_data(self.dumpster_type, delivery_zip="99999"))
        self.assertEqual(Booking.objects.count(), 0)

    def test_submitted_total_must_match(self):
        with self.assertRaises(DomainValidationError):
            services.create_booking(
                self.org.id, booking_data(self.dumpster_type, total_amount=Decimal('100.00'))
            )

        booking = services.create_booking(
            self.org.id, booking_data(self.dumpster_type, total_amount=Decimal('540.00'))
        )
        self.assertEqual(booking.total_amount, Decimal('540.00'))

    def test_inactive_type_cannot_be_booked(self):
        self.dumpster_type.is_active = False
        self.dumpster_type.save()
        with self.assertRaises(DomainValidationError) as raised:
            services.create_booking(self.org.id, booking_data(self.dumpster_type))
        self.assertEqual(raised.exception.message, "Dumpster type is not available")

    def test_type_of_other_organization_cannot_be_booked(self):
        other = make_org()
        with self.assertRaises(DomainValidationError):
            services.create_booking(other.id, booking_data(self.dumpster_type))

    def test_suspended_organization_cannot_take_bookings(self):
        self.org.status = OrganizationStatus.SUSPENDED
        self.org.save()
        client = Client()
        client.force_login(make_user(self.org))
        response = client.post(
            '/api/bookings', data=json.dumps(booking_payload(self.dumpster_type)), content_type='application/json',
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['message'], "Organization is suspended")


class BookingApiTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org = make_org()
        self.admin = make_user(self.org)
        self.customer = make_user(self.org, role=UserRole.CUSTOMER)
        self.dumpster_type = make_type(self.org)

    def _patch(self, booking, payload):
        return self.client.patch(
            f'/api/bookings/{booking.id}', data=json.dumps(payload), content_type='application/json',
        )

    def test_staff_creates_booking(self):
        self.client.force_login(self.admin)
        response = self.client.post(
            '/api/bookings',
            data=json.dumps(booking_payload(
                self.dumpster_type,
                customerId=str(self.customer.id),
                totalAmount="540.00",
                internalNotes="Gate code 1234",
            )),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['status'], "pending")
        self.assertEqual(data['customer_id'], str(self.customer.id))
        self.assertEqual(data['internal_notes'], "Gate code 1234")
        self.assertEqual(Decimal(data['total_amount']), Decimal('540.00'))

        self.assertTrue(AuditLog.objects.filter(action="CREATE_BOOKING", target_id=data['id']).exists())

    def test_customer_books_for_self(self):
        other = make_user(self.org, role=UserRole.CUSTOMER)
        self.client.force_login(self.customer)
        response = self.client.post(
            '/api/bookings',
            data=json.dumps(booking_payload(
                self.dumpster_type, customerId=str(other.id), internalNotes="sneaky",
            )),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 201)

        booking = Booking.objects.get(id=response.json()['id'])
        self.assertEqual(booking.customer_id, self.customer.id)
        self.assertIsNone(booking.internal_notes)

    def test_total_mismatch_rejected(self):
        self.client.force_login(self.admin)
        response = self.client.post(
            '/api/bookings',
            data=json.dumps(booking_payload(self.dumpster_type, totalAmount="1.00")),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(Booking.objects.count(), 0)

    def test_customers_see_only_their_bookings(self):
        own = services.create_booking(self.org.id, booking_data(self.dumpster_type), customer_id=self.customer.id)
        services.create_booking(self.org.id, booking_data(self.dumpster_type))

        self.client.force_login(self.customer)
        listed = self.client.get('/api/bookings').json()
        self.assertEqual([b['id'] for b in listed], [str(own.id)])

    def test_customer_cannot_read_foreign_booking(self):
        other = services.create_booking(self.org.id, booking_data(self.dumpster_type))
        self.client.force_login(self.customer)
        response = self.client.get(f'/api/bookings/{other.id}')
        self.assertEqual(response.status_code, 403)

    def test_internal_notes_hidden_from_customer(self):
        booking = services.create_booking(
            self.org.id,
            booking_data(self.dumpster_type, internal_notes="Difficult driveway"),
            customer_id=self.customer.id,
        )
        self.client.force_login(self.customer)
        data = self.client.get(f'/api/bookings/{booking.id}').json()
        self.assertIsNone(data['internal_notes'])

        self.client.force_login(self.admin)
        data = self.client.get(f'/api/bookings/{booking.id}').json()
        self.assertEqual(data['internal_notes'], "Difficult driveway")

    def test_admin_of_other_organization_cannot_update(self):
        booking = services.create_booking(self.org.id, booking_data(self.dumpster_type))
        self.client.force_login(make_user(make_org()))
        response = self._patch(booking, {"status": "confirmed"})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['message'], "Access denied")

        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.PENDING)

    def test_illegal_status_change(self):
        booking = services.create_booking(self.org.id, booking_data(self.dumpster_type))
        self.client.force_login(self.admin)
        response = self._patch(booking, {"status": "completed"})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['message'], "Cannot change booking status from pending to completed")

    def test_status_change_is_audited(self):
        booking = services.create_booking(self.org.id, booking_data(self.dumpster_type))
        self.client.force_login(self.admin)
        response = self._patch(booking, {"status": "confirmed"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], "confirmed")

        log = AuditLog.objects.get(action="CHANGE_BOOKING_STATUS", target_id=booking.id)
        self.assertEqual(log.context, {"from": "pending", "to": "confirmed"})

    def test_inventory_follows_booking_lifecycle(self):
        unit = DumpsterInventory.objects.create(
            organization=self.org, dumpster_type=self.dumpster_type, unit_number="20Y-001",
        )
        booking = services.create_booking(self.org.id, booking_data(self.dumpster_type))
        self.client.force_login(self.admin)

        self.assertEqual(self._patch(booking, {"dumpsterInventoryId": str(unit.id)}).status_code, 200)
        self.assertEqual(self._patch(booking, {"status": "confirmed"}).status_code, 200)
        self.assertEqual(self._patch(booking, {"status": "delivered"}).status_code, 200)
        unit.refresh_from_db()
        self.assertEqual(unit.status, DumpsterStatus.RENTED)

        self.assertEqual(self._patch(booking, {"status": "picked_up"}).status_code, 200)
        unit.refresh_from_db()
        self.assertEqual(unit.status, DumpsterStatus.AVAILABLE)

    def test_unit_cannot_be_held_by_two_bookings(self):
        unit = DumpsterInventory.objects.create(
            organization=self.org, dumpster_type=self.dumpster_type, unit_number="20Y-001",
        )
        first = services.create_booking(
            self.org.id, booking_data(self.dumpster_type, dumpster_inventory_id=unit.id)
        )
        second = services.create_booking(self.org.id, booking_data(self.dumpster_type))

        self.client.force_login(self.admin)
        response = self._patch(second, {"dumpsterInventoryId": str(unit.id)})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "Inventory unit is already assigned to another booking")
        self.assertEqual(Booking.objects.get(id=first.id).dumpster_inventory_id, unit.id)

    def test_customer_cancels_own_booking(self):
        booking = services.create_booking(
            self.org.id, booking_data(self.dumpster_type), customer_id=self.customer.id
        )
        self.client.force_login(self.customer)
        response = self._patch(booking, {"status": "cancelled"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], "cancelled")

    def test_customer_cannot_confirm(self):
        booking = services.create_booking(
            self.org.id, booking_data(self.dumpster_type), customer_id=self.customer.id
        )
        self.client.force_login(self.customer)
        self.assertEqual(self._patch(booking, {"status": "confirmed"}).status_code, 403)

    def test_late_cancellation_refused(self):
        booking = services.create_booking(
            self.org.id, booking_data(self.dumpster_type), customer_id=self.customer.id
        )
        Booking.objects.filter(id=booking.id).update(delivery_date=delivery_day(1))

        self.client.force_login(self.customer)
        response = self._patch(booking, {"status": "cancelled"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()['message'],
            "Bookings must be cancelled at least 48 hours before delivery",
        )

    def test_cancellation_notice_counts_from_start_of_delivery_day(self):
        booking = services.create_booking(
            self.org.id, booking_data(self.dumpster_type), customer_id=self.customer.id
        )
        Booking.objects.filter(id=booking.id).update(delivery_date=date(2026, 10, 20))
        booking.refresh_from_db()

        with patch('django.utils.timezone.now', return_value=at(2026, 10, 18, 23)):
            with self.assertRaises(DomainValidationError):
                services.cancel_own_booking(booking, self.customer.id)
        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.PENDING)

        with patch('django.utils.timezone.now', return_value=at(2026, 10, 17, 23)):
            cancelled = services.cancel_own_booking(booking, self.customer.id)
        self.assertEqual(cancelled.status, BookingStatus.CANCELLED)

    def test_delete_booking(self):
        booking = services.create_booking(self.org.id, booking_data(self.dumpster_type))
        self.client.force_login(self.customer)
        self.assertEqual(self.client.delete(f'/api/bookings/{booking.id}').status_code, 403)

        self.client.force_login(self.admin)
        self.assertEqual(self.client.delete(f'/api/bookings/{booking.id}').status_code, 200)
        self.assertFalse(Booking.objects.filter(id=booking.id).exists())

    def test_calendar_range_filter(self):
        booking = services.create_booking(self.org.id, booking_data(self.dumpster_type))
        self.client.force_login(self.admin)

        inside = delivery_day() + timedelta(days=3)
        response = self.client.get(f'/api/bookings?start_date={inside}&end_date={inside}')
        self.assertEqual([b['id'] for b in response.json()], [str(booking.id)])

        after = booking.pickup_date + timedelta(days=1)
        response = self.client.get(f'/api/bookings?start_date={after}')
        self.assertEqual(response.json(), [])


class BookingStateMachineTest(TestCase):

    def setUp(self):
        self.org = make_org()
        self.booking = services.create_booking(self.org.id, booking_data(make_type(self.org)))

    def test_completed_is_terminal(self):
        for status in ("confirmed", "delivered", "picked_up", "completed"):
            services.update_booking(self.booking.id, {'status': status})

        with self.assertRaises(InvalidTransitionError):
            services.update_booking(self.booking.id, {'status': BookingStatus.CANCELLED})

    def test_same_status_is_not_a_change(self):
        booking, previous = services.update_booking(self.booking.id, {'status': BookingStatus.PENDING})
        self.assertIsNone(previous)
        self.assertEqual(booking.status, BookingStatus.PENDING)

    def test_delivered_booking_cannot_be_deleted(self):
        services.update_booking(self.booking.id, {'status': BookingStatus.CONFIRMED})
        booking, _ = services.update_booking(self.booking.id, {'status': BookingStatus.DELIVERED})
        with self.assertRaises(DomainValidationError):
            services.delete_booking(booking)


class PaymentTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org = make_org()
        self.admin = make_user(self.org)
        self.booking = services.create_booking(self.org.id, booking_data(make_type(self.org)))

    def _pay(self, amount, **extra):
        payload = {"amount": amount, "paymentMethod": "credit_card"}
        payload.update(extra)
        return self.client.post(
            f'/api/bookings/{self.booking.id}/payments',
            data=json.dumps(payload),
            content_type='application/json',
        )

    def test_payment_reduces_balance(self):
        self.client.force_login(self.admin)
        response = self._pay("200.00")
        self.assertEqual(response.status_code, 201)

        self.booking.refresh_from_db()
        self.assertEqual(self.booking.amount_paid, Decimal('200.00'))
        self.assertEqual(self.booking.balance_due, Decimal('340.00'))

        listed = self.client.get(f'/api/bookings/{self.booking.id}/payments').json()
        self.assertEqual(len(listed), 1)

    def test_overpayment_rejected(self):
        self.client.force_login(self.admin)
        self._pay("200.00")
        response = self._pay("400.00")
        self.assertEqual(response.status_code, 400)
        self.assertIn("exceeds balance due", response.json()['message'])
        self.assertEqual(Payment.objects.count(), 1)

    def test_pending_payment_leaves_balance(self):
        self.client.force_login(self.admin)
        self.assertEqual(self._pay("100.00", paymentStatus="pending").status_code, 201)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.balance_due, Decimal('540.00'))

    def test_customer_cannot_record_payment(self):
        self.client.force_login(make_user(self.org, role=UserRole.CUSTOMER))
        self.assertEqual(self._pay("10.00").status_code, 403)

    def test_payment_on_cancelled_booking_rejected(self):
        services.update_booking(self.booking.id, {'status': BookingStatus.CANCELLED})
        self.client.force_login(self.admin)
        self.assertEqual(self._pay("10.00").status_code, 400)

    def test_booking_with_payments_cannot_be_deleted(self):
        self.client.force_login(self.admin)
        self.assertEqual(self._pay("100.00").status_code, 201)
        services.update_booking(self.booking.id, {'status': BookingStatus.CANCELLED})

        response = self.client.delete(f'/api/bookings/{self.booking.id}')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "Cannot delete a booking with recorded payments")
        self.assertTrue(Booking.objects.filter(id=self.booking.id).exists())
        self.assertEqual(Payment.objects.filter(booking=self.booking).count(), 1)
        self.assertEqual(services.dashboard_stats(self.org.id)['monthly_revenue'], Decimal('100.00'))

    def test_payments_block_direct_booking_delete(self):
        services.record_payment(self.booking.id, {'amount': Decimal('50.00'), 'payment_method': "cash"})
        with self.assertRaises(RestrictedError):
            Booking.objects.filter(id=self.booking.id).delete()

    def test_organization_delete_removes_its_payments(self):
        services.record_payment(self.booking.id, {'amount': Decimal('50.00'), 'payment_method': "cash"})
        self.org.delete()
        self.assertFalse(Payment.objects.exists())


class QuoteTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org = make_org()
        self.admin = make_user(self.org)
        self.customer = make_user(self.org, role=UserRole.CUSTOMER)
        self.payload = {
            "customerName": "Jane Doe",
            "customerEmail": "jane@test.com",
            "customerPhone": "555",
            "serviceAddress": "10 Elm St",
            "serviceCity": "Kansas City",
            "serviceState": "MO",
            "serviceZip": "64101",
            "itemDescription": "Old couch and a fridge",
            "photoUrls": ["https://example.com/couch.jpg"],
        }

    def _patch(self, quote_id, payload):
        return self.client.patch(
            f'/api/quotes/{quote_id}', data=json.dumps(payload), content_type='application/json',
        )

    def test_customer_requests_and_accepts_quote(self):
        self.client.force_login(self.customer)
        response = self.client.post('/api/quotes', data=json.dumps(self.payload), content_type='application/json')
        self.assertEqual(response.status_code, 201)
        quote_id = response.json()['id']
        self.assertEqual(response.json()['customer_id'], str(self.customer.id))

        self.client.force_login(self.admin)
        self.assertEqual(self._patch(quote_id, {"status": "quoted"}).status_code, 400)
        response = self._patch(quote_id, {"quoteAmount": "350.00", "status": "quoted"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], "quoted")

        self.client.force_login(self.customer)
        response = self._patch(quote_id, {"status": "accepted"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Quote.objects.get(id=quote_id).status, QuoteStatus.ACCEPTED)

    def test_customer_cannot_price_quote(self):
        quote = services.create_quote(
            self.org.id,
            {
                'customer_name': "Jane", 'customer_email': "jane@test.com", 'customer_phone': "555",
                'service_address': "1", 'service_city': "KC", 'service_state': "MO",
                'service_zip': "64101", 'item_description': "Boxes",
            },
            customer_id=self.customer.id,
        )
        self.client.force_login(self.customer)
        self.assertEqual(self._patch(quote.id, {"quoteAmount": "1.00"}).status_code, 403)

    def test_customer_sees_only_own_quotes(self):
        services.create_quote(self.org.id, {
            'customer_name': "Other", 'customer_email': "o@test.com", 'customer_phone': "555",
            'service_address': "1", 'service_city': "KC", 'service_state': "MO",
            'service_zip': "64101", 'item_description': "Boxes",
        })
        self.client.force_login(self.customer)
        self.assertEqual(self.client.get('/api/quotes').json(), [])

        self.client.force_login(self.admin)
        self.assertEqual(len(self.client.get('/api/quotes').json()), 1)


class DashboardTest(TestCase):

    def setUp(self):
        self.org = make_org()
        self.dumpster_type = make_type(self.org)
        DumpsterInventory.objects.create(
            organization=self.org, dumpster_type=self.dumpster_type, unit_number="20Y-001",
        )

    def test_stats(self):
        booking = services.create_booking(self.org.id, booking_data(self.dumpster_type))
        services.create_booking(self.org.id, booking_data(self.dumpster_type))
        cancelled = services.create_booking(self.org.id, booking_data(self.dumpster_type))
        services.update_booking(cancelled.id, {'status': BookingStatus.CANCELLED})
        services.record_payment(booking.id, {'amount': Decimal('100.00'), 'payment_method': "ach"})

        stats = services.dashboard_stats(self.org.id, today=booking.delivery_date)
        self.assertEqual(stats['today_deliveries'], 2)
        self.assertEqual(stats['today_pickups'], 0)
        self.assertEqual(stats['available_units'], 1)

        this_month = services.dashboard_stats(self.org.id)
        self.assertEqual(this_month['monthly_revenue'], Decimal('100.00'))

    def test_stats_endpoint(self):
        client = Client()
        client.force_login(make_user(self.org))
        response = client.get('/api/dashboard/stats')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['available_units'], 1)

        client.force_login(make_user(self.org, role=UserRole.CUSTOMER))
        self.assertEqual(client.get('/api/dashboard/stats').status_code, 403)
