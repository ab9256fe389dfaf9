"""
Tests for authentication, sessions, the permission table and team management.
"""
import json
from uuid import uuid4

from django.contrib.auth.hashers import identify_hasher
from django.db import IntegrityError, transaction
from django.test import Client, TestCase

from apps.identity.invite_service import InviteService
from apps.identity.models import OrganizationInvitation, User, UserRole
from apps.identity.permissions import (
    AuthContext,
    Permissions,
    ROLE_PERMISSIONS,
    authorize,
    can_access,
)
from apps.core.exceptions import PermissionDeniedError
from apps.organizations.models import Organization, OrganizationStatus


PASSWORD = "longenough"


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


def make_user(org, role=UserRole.ORG_ADMIN, email=None, password=PASSWORD):
    return User.objects.create_user(
        email=email or f"user_{uuid4().hex[:8]}@test.com",
        password=password,
        first_name="Test",
        last_name="User",
        role=role,
        organization=org,
    )


def post_json(client, path, payload):
    return client.post(path, data=json.dumps(payload), content_type='application/json')


def patch_json(client, path, payload):
    return client.patch(path, data=json.dumps(payload), content_type='application/json')


class CustomerRegistrationTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org = make_org()

    def _register(self, **overrides):
        payload = {
            "email": "a@b.com",
            "password": PASSWORD,
            "firstName": "A",
            "lastName": "B",
            "organizationId": str(self.org.id),
        }
        payload.update(overrides)
        return post_json(self.client, '/api/auth/register/customer', payload)

    def test_register_returns_customer_without_password(self):
        response = self._register()
        self.assertEqual(response.status_code, 200)

        data = response.json()
        self.assertEqual(data['role'], 'customer')
        self.assertEqual(data['email'], 'a@b.com')
        self.assertNotIn('password', data)
        self.assertNotIn('passwordHash', data)
        self.assertNotIn('password_hash', data)

    def test_register_ignores_injected_role(self):
        response = self._register(role='super_admin')
        self.assertEqual(response.status_code, 200)

        user = User.objects.get(email='a@b.com', organization=self.org)
        self.assertEqual(user.role, UserRole.CUSTOMER)

    def test_duplicate_registration_rejected(self):
        self.assertEqual(self._register().status_code, 200)

        response = Client().post(
            '/api/auth/register/customer',
            data=json.dumps({
                "email": "A@B.com",
                "password": PASSWORD,
                "firstName": "A",
                "lastName": "B",
                "organizationId": str(self.org.id),
            }),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "Email already registered for this organization")

    def test_same_email_allowed_in_another_organization(self):
        self.assertEqual(self._register().status_code, 200)
        other = make_org()
        response = Client().post(
            '/api/auth/register/customer',
            data=json.dumps({
                "email": "a@b.com",
                "password": PASSWORD,
                "first_name": "A",
                "last_name": "B",
                "organization_id": str(other.id),
            }),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(User.objects.filter(email='a@b.com').count(), 2)

    def test_short_password_rejected(self):
        response = self._register(password="short")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "Password must be at least 8 characters")

    def test_unknown_organization_rejected(self):
        response = self._register(organizationId=str(uuid4()))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "Invalid organization")

    def test_password_stored_as_bcrypt(self):
        self._register()
        user = User.objects.get(email='a@b.com')
        self.assertEqual(identify_hasher(user.password).algorithm, 'bcrypt')
        self.assertIn('$10$', user.password)


class UniqueEmailConstraintTest(TestCase):

    def test_duplicate_email_in_org_fails_at_storage_layer(self):
        org = make_org()
        make_user(org, email="dup@test.com")
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                make_user(org, email="dup@test.com")

    def test_platform_email_unique_without_organization(self):
        User.objects.create_superuser(email="root@test.com", password=PASSWORD, first_name="R", last_name="T")
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                User.objects.create_superuser(email="root@test.com", password=PASSWORD, first_name="R", last_name="T")


class LoginTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org = make_org()
        self.admin = make_user(self.org, email="staff@test.com")
        self.super_admin = User.objects.create_superuser(
            email="admin@dumpsterpro.com",
            password="admin123",
            first_name="Super",
            last_name="Admin",
        )

    def _login(self, payload, client=None):
        return post_json(client or self.client, '/api/auth/login', payload)

    def test_super_admin_login_without_organization(self):
        response = self._login({"email": "admin@dumpsterpro.com", "password": "admin123"})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['role'], 'super_admin')
        self.assertNotIn('password', data)

    def test_tenant_login_without_organization_rejected(self):
        response = self._login({"email": "staff@test.com", "password": PASSWORD})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['message'], "Organization required for login")

    def test_tenant_login_with_organization(self):
        response = self._login({
            "email": "STAFF@test.com",
            "password": PASSWORD,
            "organizationId": str(self.org.id),
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['id'], str(self.admin.id))

        self.admin.refresh_from_db()
        self.assertIsNotNone(self.admin.last_login)

    def test_unknown_email_and_wrong_password_look_identical(self):
        unknown = self._login({
            "email": "nobody@test.com",
            "password": PASSWORD,
            "organizationId": str(self.org.id),
        }, client=Client())
        wrong = self._login({
            "email": "staff@test.com",
            "password": "wrong-password",
            "organizationId": str(self.org.id),
        }, client=Client())

        self.assertEqual(unknown.status_code, 401)
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(unknown.content, wrong.content)
        self.assertEqual(unknown.json(), {"message": "Invalid email or password"})

    def test_login_scoped_to_organization(self):
        other = make_org()
        response = self._login({
            "email": "staff@test.com",
            "password": PASSWORD,
            "organizationId": str(other.id),
        })
        self.assertEqual(response.status_code, 401)

    def test_inactive_user_cannot_login(self):
        self.admin.is_active = False
        self.admin.save()
        response = self._login({
            "email": "staff@test.com",
            "password": PASSWORD,
            "organizationId": str(self.org.id),
        })
        self.assertEqual(response.status_code, 401)

    def test_suspended_organization_cannot_login(self):
        self.org.status = OrganizationStatus.SUSPENDED
        self.org.save()
        response = self._login({
            "email": "staff@test.com",
            "password": PASSWORD,
            "organizationId": str(self.org.id),
        })
        self.assertEqual(response.status_code, 403)

    def test_session_cookie_attributes(self):
        response = self._login({"email": "admin@dumpsterpro.com", "password": "admin123"})
        cookie = response.cookies['sessionId']
        self.assertTrue(cookie['httponly'])
        self.assertEqual(cookie['samesite'], 'Strict')
        self.assertEqual(int(cookie['max-age']), 60 * 60 * 24 * 30)


class SessionRegenerationTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org = make_org()
        make_user(self.org, email="staff@test.com")

    def _session_key(self):
        return self.client.cookies['sessionId'].value

    def test_login_issues_new_session_key(self):
        payload = {"email": "staff@test.com", "password": PASSWORD, "organizationId": str(self.org.id)}
        self.assertEqual(post_json(self.client, '/api/auth/login', payload).status_code, 200)
        first_key = self._session_key()

        self.assertEqual(post_json(self.client, '/api/auth/login', payload).status_code, 200)
        self.assertNotEqual(self._session_key(), first_key)

    def test_registration_issues_new_session_key(self):
        payload = {"email": "staff@test.com", "password": PASSWORD, "organizationId": str(self.org.id)}
        post_json(self.client, '/api/auth/login', payload)
        first_key = self._session_key()

        response = post_json(self.client, '/api/auth/register/customer', {
            "email": "new@test.com",
            "password": PASSWORD,
            "firstName": "New",
            "lastName": "Customer",
            "organizationId": str(self.org.id),
        })
        self.assertEqual(response.status_code, 200)
        self.assertNotEqual(self._session_key(), first_key)

        me = self.client.get('/api/auth/me')
        self.assertEqual(me.json()['email'], "new@test.com")


class MeAndLogoutTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org = make_org()
        self.user = make_user(self.org)

    def test_me_requires_session(self):
        response = self.client.get('/api/auth/me')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['message'], "Authentication required")

    def test_me_is_idempotent(self):
        self.client.force_login(self.user)
        first = self.client.get('/api/auth/me')
        second = self.client.get('/api/auth/me')
        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.json(), second.json())

    def test_me_reflects_database_changes(self):
        self.client.force_login(self.user)
        User.objects.filter(id=self.user.id).update(role=UserRole.CUSTOMER)
        self.assertEqual(self.client.get('/api/auth/me').json()['role'], 'customer')

    def test_logout_then_me_is_unauthorized(self):
        self.client.force_login(self.user)
        response = self.client.post('/api/auth/logout')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['message'], "Logged out successfully")

        self.assertEqual(self.client.get('/api/auth/me').status_code, 401)

    def test_session_of_deleted_user_is_flushed(self):
        self.client.force_login(self.user)
        self.user.delete()

        response = self.client.get('/api/auth/me')
        self.assertEqual(response.status_code, 401)
        self.assertNotIn('_auth_user_id', self.client.session)

    def test_update_profile(self):
        self.client.force_login(self.user)
        response = patch_json(self.client, '/api/auth/profile', {"firstName": "Renamed", "phone": "555"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['first_name'], "Renamed")
        self.assertEqual(response.json()['phone'], "555")

    def test_change_password_keeps_session(self):
        self.client.force_login(self.user)
        response = post_json(self.client, '/api/auth/change-password', {
            "currentPassword": PASSWORD,
            "newPassword": "another-long-one",
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get('/api/auth/me').status_code, 200)

        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password("another-long-one"))

    def test_change_password_requires_current_password(self):
        self.client.force_login(self.user)
        response = post_json(self.client, '/api/auth/change-password', {
            "currentPassword": "not-it",
            "newPassword": "another-long-one",
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "Current password is incorrect")


class PermissionPolicyTest(TestCase):
    """The role table and the single access predicate."""

    def _ctx(self, role, org_id):
        return AuthContext(
            user_id=uuid4(),
            email="x@test.com",
            role=role,
            organization_id=org_id,
            acting_organization_id=org_id,
        )

    def test_super_admin_holds_every_permission(self):
        every = {
            value for key, value in vars(Permissions).items()
            if key.isupper()
        }
        self.assertEqual(set(ROLE_PERMISSIONS[UserRole.SUPER_ADMIN]), every)

    def test_only_owner_manages_roles(self):
        self.assertIn(Permissions.TEAM_MANAGE_ROLES, ROLE_PERMISSIONS[UserRole.ORG_OWNER])
        self.assertNotIn(Permissions.TEAM_MANAGE_ROLES, ROLE_PERMISSIONS[UserRole.ORG_ADMIN])

    def test_customer_cannot_manage_bookings(self):
        self.assertNotIn(Permissions.BOOKING_MANAGE, ROLE_PERMISSIONS[UserRole.CUSTOMER])
        self.assertIn(Permissions.BOOKING_CREATE, ROLE_PERMISSIONS[UserRole.CUSTOMER])

    def test_tenant_mismatch_denied(self):
        org_a, org_b = uuid4(), uuid4()
        ctx = self._ctx(UserRole.ORG_ADMIN, org_a)
        self.assertTrue(can_access(ctx, org_a, Permissions.BOOKING_MANAGE))
        self.assertFalse(can_access(ctx, org_b, Permissions.BOOKING_MANAGE))
        self.assertFalse(can_access(ctx, None, Permissions.BOOKING_MANAGE))

        with self.assertRaises(PermissionDeniedError) as raised:
            authorize(ctx, org_b, Permissions.BOOKING_MANAGE)
        self.assertEqual(raised.exception.message, "Access denied")

    def test_super_admin_bypasses_tenant_match(self):
        ctx = self._ctx(UserRole.SUPER_ADMIN, None)
        self.assertTrue(can_access(ctx, uuid4(), Permissions.BOOKING_MANAGE))

    def test_missing_permission_reported(self):
        org = uuid4()
        ctx = self._ctx(UserRole.CUSTOMER, org)
        with self.assertRaises(PermissionDeniedError) as raised:
            authorize(ctx, org, Permissions.FLEET_MANAGE)
        self.assertEqual(raised.exception.message, "Insufficient permissions")


class TeamManagementTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org = make_org()
        self.owner = make_user(self.org, role=UserRole.ORG_OWNER)
        self.admin = make_user(self.org, role=UserRole.ORG_ADMIN)
        self.customer = make_user(self.org, role=UserRole.CUSTOMER)

    def test_list_team(self):
        self.client.force_login(self.admin)
        response = self.client.get('/api/team')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()), 3)

    def test_customer_cannot_list_team(self):
        self.client.force_login(self.customer)
        self.assertEqual(self.client.get('/api/team').status_code, 403)

    def test_owner_changes_role(self):
        self.client.force_login(self.owner)
        response = patch_json(self.client, f'/api/team/{self.customer.id}', {"role": "org_admin"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['role'], 'org_admin')

    def test_admin_cannot_change_role(self):
        self.client.force_login(self.admin)
        response = patch_json(self.client, f'/api/team/{self.customer.id}', {"role": "org_admin"})
        self.assertEqual(response.status_code, 403)

    def test_cannot_promote_to_owner(self):
        self.client.force_login(self.owner)
        response = patch_json(self.client, f'/api/team/{self.customer.id}', {"role": "org_owner"})
        self.assertEqual(response.status_code, 400)

    def test_cannot_change_user_of_other_org(self):
        stranger = make_user(make_org(), role=UserRole.CUSTOMER)
        self.client.force_login(self.owner)
        response = patch_json(self.client, f'/api/team/{stranger.id}', {"role": "org_admin"})
        self.assertEqual(response.status_code, 403)


class InvitationTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.org = make_org()
        self.admin = make_user(self.org, role=UserRole.ORG_ADMIN)

    def test_invite_and_accept(self):
        self.client.force_login(self.admin)
        response = post_json(self.client, '/api/team/invitations', {
            "email": "New.Hire@test.com",
            "role": "org_admin",
        })
        self.assertEqual(response.status_code, 201)
        token = response.json()['token']

        guest = Client()
        accepted = post_json(guest, '/api/auth/invitations/accept', {
            "token": token,
            "password": PASSWORD,
            "firstName": "New",
            "lastName": "Hire",
        })
        self.assertEqual(accepted.status_code, 200)
        data = accepted.json()
        self.assertEqual(data['email'], "new.hire@test.com")
        self.assertEqual(data['role'], "org_admin")
        self.assertEqual(data['organization_id'], str(self.org.id))

        invitation = OrganizationInvitation.objects.get(email="new.hire@test.com")
        self.assertIsNotNone(invitation.accepted_at)
        self.assertEqual(guest.get('/api/auth/me').status_code, 200)

    def test_invitation_cannot_be_reused(self):
        invitation = InviteService.create_invitation(
            organization_id=self.org.id,
            email="once@test.com",
            role=UserRole.CUSTOMER,
            invited_by=self.admin,
        )
        payload = {"token": invitation.token, "password": PASSWORD, "firstName": "O", "lastName": "N"}
        self.assertEqual(post_json(Client(), '/api/auth/invitations/accept', payload).status_code, 200)
        self.assertEqual(post_json(Client(), '/api/auth/invitations/accept', payload).status_code, 400)

    def test_tampered_token_rejected(self):
        response = post_json(self.client, '/api/auth/invitations/accept', {
            "token": "not-a-token",
            "password": PASSWORD,
            "firstName": "X",
            "lastName": "Y",
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "Invalid invitation token")

    def test_cannot_invite_owner(self):
        self.client.force_login(self.admin)
        response = post_json(self.client, '/api/team/invitations', {"email": "x@test.com", "role": "org_owner"})
        self.assertEqual(response.status_code, 400)
