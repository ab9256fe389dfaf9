import json
from decimal import Decimal
from uuid import uuid4

from django.test import Client, TestCase

from apps.fleet import services
from apps.fleet.models import DumpsterInventory, DumpsterStatus, DumpsterType
from apps.identity.models import User, UserRole
from apps.organizations.models import Organization


def make_org():
    slug = f"org-{uuid4().hex[:8]}"
    return Organization.objects.create(
        name=slug, slug=slug, business_name=slug, email=f"{slug}@test.com",
        phone="555", address="1 Main", city="KC", state="MO", zip="64101",
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


def make_type(org, size=20, **extra):
    defaults = {
        'name': f"{size} Yard Dumpster",
        'size_yards': size,
        'daily_rate': Decimal('65.00'),
        'weekly_rate': Decimal('425.00'),
        'weight_limit_tons': Decimal('4.00'),
    }
    defaults.update(extra)
    return DumpsterType.objects.create(organization=org, **defaults)


class CatalogTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org = make_org()
        self.admin = make_user(self.org)
        self.customer = make_user(self.org, role=UserRole.CUSTOMER)
        self.active = make_type(self.org, size=20)
        self.inactive = make_type(self.org, size=40, is_active=False)

    def test_customer_sees_active_types_only(self):
        self.client.force_login(self.customer)
        response = self.client.get('/api/dumpster-types?include_inactive=true')
        self.assertEqual(response.status_code, 200)
        self.assertEqual([t['id'] for t in response.json()], [str(self.active.id)])

    def test_staff_may_include_inactive(self):
        self.client.force_login(self.admin)
        default = self.client.get('/api/dumpster-types').json()
        everything = self.client.get('/api/dumpster-types?include_inactive=true').json()
        self.assertEqual(len(default), 1)
        self.assertEqual(len(everything), 2)

    def test_create_type(self):
        self.client.force_login(self.admin)
        response = self.client.post(
            '/api/dumpster-types',
            data=json.dumps({
                "name": "10 Yard Dumpster",
                "sizeYards": 10,
                "dailyRate": "45.00",
                "weeklyRate": "299.00",
                "weightLimitTons": "2.00",
            }),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['organization_id'], str(self.org.id))
        self.assertEqual(Decimal(data['weekly_rate']), Decimal('299.00'))

    def test_customer_cannot_create_type(self):
        self.client.force_login(self.customer)
        response = self.client.post(
            '/api/dumpster-types',
            data=json.dumps({
                "name": "X", "sizeYards": 10, "dailyRate": "1", "weeklyRate": "1", "weightLimitTons": "1",
            }),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 403)

    def test_other_tenant_cannot_read_type(self):
        self.client.force_login(make_user(make_org()))
        response = self.client.get(f'/api/dumpster-types/{self.active.id}')
        self.assertEqual(response.status_code, 403)

    def test_rates_update(self):
        self.client.force_login(self.admin)
        response = self.client.patch(
            f'/api/dumpster-types/{self.active.id}',
            data=json.dumps({"dailyRate": "70.00"}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)
        self.active.refresh_from_db()
        self.assertEqual(self.active.daily_rate, Decimal('70.00'))
        self.assertEqual(self.active.weekly_rate, Decimal('425.00'))

    def test_delete_type_in_use_conflicts(self):
        DumpsterInventory.objects.create(organization=self.org, dumpster_type=self.active, unit_number="20Y-001")
        self.client.force_login(self.admin)
        response = self.client.delete(f'/api/dumpster-types/{self.active.id}')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "Dumpster type is in use by inventory or bookings")
        self.assertTrue(DumpsterType.objects.filter(id=self.active.id).exists())

    def test_delete_unused_type(self):
        self.client.force_login(self.admin)
        response = self.client.delete(f'/api/dumpster-types/{self.inactive.id}')
        self.assertEqual(response.status_code, 200)
        self.assertFalse(DumpsterType.objects.filter(id=self.inactive.id).exists())


class InventoryTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org = make_org()
        self.admin = make_user(self.org)
        self.dumpster_type = make_type(self.org)
        self.unit = DumpsterInventory.objects.create(
            organization=self.org, dumpster_type=self.dumpster_type, unit_number="20Y-001",
        )

    def _patch(self, payload):
        return self.client.patch(
            f'/api/inventory/{self.unit.id}', data=json.dumps(payload), content_type='application/json',
        )

    def test_create_unit(self):
        self.client.force_login(self.admin)
        response = self.client.post(
            '/api/inventory',
            data=json.dumps({"dumpsterTypeId": str(self.dumpster_type.id), "unitNumber": "20Y-002"}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['status'], "available")

    def test_duplicate_unit_number(self):
        self.client.force_login(self.admin)
        response = self.client.post(
            '/api/inventory',
            data=json.dumps({"dumpsterTypeId": str(self.dumpster_type.id), "unitNumber": "20Y-001"}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "Unit number already exists")

    def test_unit_requires_type_of_same_organization(self):
        foreign_type = make_type(make_org())
        self.client.force_login(self.admin)
        response = self.client.post(
            '/api/inventory',
            data=json.dumps({"dumpsterTypeId": str(foreign_type.id), "unitNumber": "X-1"}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)

    def test_allowed_status_transitions(self):
        self.client.force_login(self.admin)
        self.assertEqual(self._patch({"status": "maintenance"}).status_code, 200)
        self.assertEqual(self._patch({"status": "available"}).status_code, 200)
        self.assertEqual(self._patch({"status": "retired"}).status_code, 200)

        self.unit.refresh_from_db()
        self.assertEqual(self.unit.status, DumpsterStatus.RETIRED)

    def test_retired_is_terminal(self):
        self.unit.status = DumpsterStatus.RETIRED
        self.unit.save()
        self.client.force_login(self.admin)
        response = self._patch({"status": "available"})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['message'], "Cannot change inventory status from retired to available")

    def test_filter_by_status(self):
        DumpsterInventory.objects.create(
            organization=self.org, dumpster_type=self.dumpster_type, unit_number="20Y-002",
            status=DumpsterStatus.MAINTENANCE,
        )
        self.client.force_login(self.admin)
        response = self.client.get('/api/inventory?status=maintenance')
        self.assertEqual([u['unit_number'] for u in response.json()], ["20Y-002"])
        self.assertEqual(services.count_available_units(self.org.id), 1)

    def test_customer_cannot_view_inventory(self):
        self.client.force_login(make_user(self.org, role=UserRole.CUSTOMER))
        self.assertEqual(self.client.get('/api/inventory').status_code, 403)

    def test_rented_unit_cannot_be_deleted(self):
        services.set_unit_status(self.unit, DumpsterStatus.RENTED)
        self.client.force_login(self.admin)
        response = self.client.delete(f'/api/inventory/{self.unit.id}')
        self.assertEqual(response.status_code, 400)
        self.assertTrue(DumpsterInventory.objects.filter(id=self.unit.id).exists())
