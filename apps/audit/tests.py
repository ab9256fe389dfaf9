from uuid import uuid4

from django.test import Client, TestCase

from apps.audit.audit_service import AuditAction, log_action
from apps.audit.models import AuditLog
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


class AuditLogTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org = make_org()
        self.admin = make_user(self.org)

    def test_log_action_records_entry(self):
        target = uuid4()
        entry = log_action(
            organization_id=self.org.id,
            action=AuditAction.CREATE_BOOKING,
            target_type="Booking",
            target_id=target,
            target_label="BK-TEST",
            performed_by_id=self.admin.id,
            context={"total_amount": "540.00"},
        )
        self.assertIsNotNone(entry)
        self.assertEqual(entry.performed_by, self.admin)
        self.assertEqual(AuditLog.objects.get(target_id=target).context, {"total_amount": "540.00"})

    def test_log_action_never_raises(self):
        entry = log_action(
            organization_id=self.org.id,
            action=AuditAction.CREATE_BOOKING,
            target_type="Booking",
            target_id="not-a-uuid",
        )
        self.assertIsNone(entry)

    def test_list_is_tenant_scoped_and_filterable(self):
        log_action(organization_id=self.org.id, action=AuditAction.UPDATE_SETTINGS,
                   target_type="OrganizationSettings", target_id=uuid4())
        log_action(organization_id=self.org.id, action=AuditAction.CREATE_BOOKING,
                   target_type="Booking", target_id=uuid4())
        log_action(organization_id=make_org().id, action=AuditAction.CREATE_BOOKING,
                   target_type="Booking", target_id=uuid4())

        self.client.force_login(self.admin)
        response = self.client.get('/api/audit-logs')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()), 2)

        filtered = self.client.get('/api/audit-logs?action=CREATE_BOOKING').json()
        self.assertEqual([e['action'] for e in filtered], ["CREATE_BOOKING"])

    def test_login_is_audited(self):
        self.client.post(
            '/api/auth/login',
            data={"email": self.admin.email, "password": "longenough", "organizationId": str(self.org.id)},
            content_type='application/json',
        )
        self.assertTrue(AuditLog.objects.filter(action=AuditAction.LOGIN, target_id=self.admin.id).exists())

    def test_customer_cannot_read_audit_log(self):
        self.client.force_login(make_user(self.org, role=UserRole.CUSTOMER))
        self.assertEqual(self.client.get('/api/audit-logs').status_code, 403)
