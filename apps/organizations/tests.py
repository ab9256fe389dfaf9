import json
from datetime import date
from decimal import Decimal
from uuid import uuid4

from django.test import Client, TestCase

from apps.identity.models import User, UserRole
from apps.organizations import services
from apps.organizations.models import Organization, OrganizationSettings, ServiceArea


def make_org(slug=None, **extra):
    slug = slug or f"org-{uuid4().hex[:8]}"
    return Organization.objects.create(
        name=slug.replace('-', ' ').title(),
        slug=slug,
        business_name=f"{slug} LLC",
        email=f"info@{slug}.test",
        phone="(816) 555-0100",
        address="1 Main St",
        city="Kansas City",
        state="MO",
        zip="64101",
        **extra,
    )


def make_user(org, role=UserRole.ORG_ADMIN):
    return User.objects.create_user(
        email=f"user_{uuid4().hex[:8]}@test.com",
        password="longenough",
        first_name="Test",
        last_name="User",
        role=role,
        organization=org,
    )


def make_super_admin():
    return User.objects.create_superuser(
        email=f"root_{uuid4().hex[:8]}@test.com",
        password="longenough",
        first_name="Super",
        last_name="Admin",
    )


class PublicOrganizationTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org = make_org(
            slug="acme-dumpsters",
            tax_rate=Decimal('0.0875'),
            primary_color="211 85% 42%",
            stripe_account_id="acct_secret",
        )

    def test_unknown_slug_is_not_found(self):
        response = self.client.get('/api/organizations/nonexistent-slug')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['message'], "Organization not found")

    def test_public_projection(self):
        response = self.client.get('/api/organizations/acme-dumpsters')
        self.assertEqual(response.status_code, 200)

        data = response.json()
        self.assertEqual(data['slug'], "acme-dumpsters")
        self.assertEqual(data['css_variables'], {"--primary": "211 85% 42%"})
        for hidden in ('tax_rate', 'stripe_account_id', 'email', 'subscription_amount', 'status'):
            self.assertNotIn(hidden, data)

    def test_service_area_check(self):
        ServiceArea.objects.create(organization=self.org, zip_code="64101", delivery_fee=Decimal('75.00'))
        ServiceArea.objects.create(
            organization=self.org, zip_code="64102", delivery_fee=Decimal('80.00'), is_active=False,
        )

        served = self.client.get('/api/organizations/acme-dumpsters/service-areas/64101').json()
        self.assertTrue(served['serviced'])
        self.assertEqual(Decimal(served['delivery_fee']), Decimal('75.00'))

        inactive = self.client.get('/api/organizations/acme-dumpsters/service-areas/64102').json()
        self.assertFalse(inactive['serviced'])
        self.assertIsNone(inactive['delivery_fee'])


class AdminOrganizationTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.super_admin = make_super_admin()
        self.payload = {
            "name": "Acme",
            "slug": "acme",
            "businessName": "Acme LLC",
            "email": "Ops@Acme.test",
            "phone": "555-0100",
            "address": "1 Main St",
            "city": "Kansas City",
            "state": "MO",
            "zip": "64101",
            "taxRate": "0.0800",
        }

    def test_create_then_get_round_trip(self):
        self.client.force_login(self.super_admin)
        created = self.client.post(
            '/api/admin/organizations', data=json.dumps(self.payload), content_type='application/json'
        )
        self.assertEqual(created.status_code, 201)
        org_id = created.json()['id']

        fetched = self.client.get(f'/api/admin/organizations/{org_id}')
        self.assertEqual(fetched.status_code, 200)
        data = fetched.json()
        self.assertEqual(data['slug'], "acme")
        self.assertEqual(data['email'], "ops@acme.test")
        self.assertEqual(data['status'], "trial")
        self.assertEqual(Decimal(data['tax_rate']), Decimal('0.08'))

        self.assertTrue(OrganizationSettings.objects.filter(organization_id=org_id).exists())

    def test_invalid_slug_rejected(self):
        self.client.force_login(self.super_admin)
        self.payload['slug'] = "Not A Slug"
        response = self.client.post(
            '/api/admin/organizations', data=json.dumps(self.payload), content_type='application/json'
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("lowercase letters", response.json()['message'])

    def test_duplicate_slug_rejected(self):
        make_org(slug="acme")
        self.client.force_login(self.super_admin)
        response = self.client.post(
            '/api/admin/organizations', data=json.dumps(self.payload), content_type='application/json'
        )
        self.assertEqual(response.status_code, 400)

    def test_slug_is_immutable(self):
        org = make_org(slug="fixed-slug")
        self.client.force_login(self.super_admin)
        response = self.client.patch(
            f'/api/admin/organizations/{org.id}',
            data=json.dumps({"slug": "other-slug"}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "Organization slug cannot be changed")

    def test_suspend_organization(self):
        org = make_org()
        self.client.force_login(self.super_admin)
        response = self.client.patch(
            f'/api/admin/organizations/{org.id}',
            data=json.dumps({"status": "suspended"}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)
        org.refresh_from_db()
        self.assertEqual(org.status, "suspended")

    def test_null_leaves_required_fields_alone(self):
        org = make_org(website="https://acme.test")
        self.client.force_login(self.super_admin)
        response = self.client.patch(
            f'/api/admin/organizations/{org.id}',
            data=json.dumps({"name": None, "businessName": None, "website": None}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)

        org.refresh_from_db()
        self.assertEqual(org.business_name, f"{org.slug} LLC")
        self.assertTrue(org.name)
        self.assertIsNone(org.website)

    def test_tenant_admin_cannot_use_console(self):
        admin = make_user(make_org())
        self.client.force_login(admin)
        self.assertEqual(self.client.get('/api/admin/organizations').status_code, 403)

    def test_provision_user_returns_temporary_password_once(self):
        org = make_org()
        self.client.force_login(self.super_admin)
        response = self.client.post(
            f'/api/admin/organizations/{org.id}/users',
            data=json.dumps({"email": "owner@acme.test", "firstName": "O", "lastName": "W", "role": "org_owner"}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['user']['role'], "org_owner")

        user = User.objects.get(email="owner@acme.test", organization=org)
        self.assertTrue(user.check_password(data['temporary_password']))

        listed = self.client.get(f'/api/admin/organizations/{org.id}/users').json()
        self.assertNotIn('temporary_password', listed[0])

    def test_delete_organization(self):
        org = make_org()
        self.client.force_login(self.super_admin)
        response = self.client.delete(f'/api/admin/organizations/{org.id}')
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Organization.objects.filter(id=org.id).exists())


class OrganizationSettingsTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org = make_org()
        self.admin = make_user(self.org)
        self.customer = make_user(self.org, role=UserRole.CUSTOMER)

    def test_settings_created_on_first_read(self):
        self.client.force_login(self.admin)
        response = self.client.get('/api/settings')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['minimum_rental_days'], 7)

    def test_update_settings(self):
        self.client.force_login(self.admin)
        response = self.client.patch(
            '/api/settings',
            data=json.dumps({"minimumRentalDays": 3, "leadTimeHours": 24}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['minimum_rental_days'], 3)
        self.assertEqual(services.get_settings(self.org.id).lead_time_hours, 24)

    def test_customer_cannot_update_settings(self):
        self.client.force_login(self.customer)
        response = self.client.patch(
            '/api/settings',
            data=json.dumps({"minimumRentalDays": 1}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 403)

    def test_current_organization(self):
        self.client.force_login(self.customer)
        response = self.client.get('/api/organization/current')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['id'], str(self.org.id))


class ServiceAreaAndBlackoutTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org_a = make_org()
        self.org_b = make_org()
        self.admin_a = make_user(self.org_a)
        self.admin_b = make_user(self.org_b)

    def test_create_and_list_service_areas(self):
        self.client.force_login(self.admin_a)
        response = self.client.post(
            '/api/service-areas',
            data=json.dumps({"zipCode": "64101", "deliveryFee": "75.00"}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 201)

        duplicate = self.client.post(
            '/api/service-areas',
            data=json.dumps({"zipCode": "64101", "deliveryFee": "80.00"}),
            content_type='application/json',
        )
        self.assertEqual(duplicate.status_code, 400)

        listed = self.client.get('/api/service-areas').json()
        self.assertEqual([a['zip_code'] for a in listed], ["64101"])
        self.assertEqual(services.get_delivery_fee(self.org_a.id, "64101"), Decimal('75.00'))
        self.assertIsNone(services.get_delivery_fee(self.org_b.id, "64101"))

    def test_cannot_delete_other_tenants_service_area(self):
        area = ServiceArea.objects.create(organization=self.org_b, zip_code="64105", delivery_fee=Decimal('75'))
        self.client.force_login(self.admin_a)
        response = self.client.delete(f'/api/service-areas/{area.id}')
        self.assertEqual(response.status_code, 403)
        self.assertTrue(ServiceArea.objects.filter(id=area.id).exists())

    def test_blackout_dates(self):
        self.client.force_login(self.admin_a)
        response = self.client.post(
            '/api/blackout-dates',
            data=json.dumps({"date": "2030-12-25", "reason": "Christmas"}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 201)
        self.assertTrue(services.is_blackout_date(self.org_a.id, date(2030, 12, 25)))
        self.assertFalse(services.is_blackout_date(self.org_b.id, date(2030, 12, 25)))

        blackout_id = response.json()['id']
        self.client.force_login(self.admin_b)
        self.assertEqual(self.client.delete(f'/api/blackout-dates/{blackout_id}').status_code, 403)


class TenantContextTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org_a = make_org()
        self.org_b = make_org()

    def test_super_admin_switches_organization_with_header(self):
        self.client.force_login(make_super_admin())
        response = self.client.get('/api/settings', HTTP_X_ORGANIZATION_ID=str(self.org_b.id))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['organization_id'], str(self.org_b.id))

    def test_header_ignored_for_tenant_users(self):
        self.client.force_login(make_user(self.org_a))
        response = self.client.get('/api/settings', HTTP_X_ORGANIZATION_ID=str(self.org_b.id))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['organization_id'], str(self.org_a.id))

    def test_super_admin_without_organization_context(self):
        self.client.force_login(make_super_admin())
        response = self.client.get('/api/settings')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "User has no organization")
