from uuid import uuid4

from django.test import SimpleTestCase, TestCase

from apps.core.api_errors import first_validation_message
from apps.core.exceptions import (
    AuthenticationError,
    ConflictError,
    DomainValidationError,
    NotFoundError,
    PermissionDeniedError,
)
from apps.core.task_service import TaskService, _get_backend
from apps.core.backends.local_backend import LocalTaskService


class ValidationMessageTest(SimpleTestCase):

    def test_first_issue_message_unchanged(self):
        errors = [
            {'loc': ('body', 'payload', 'first_name'), 'msg': 'String should have at least 1 character'},
            {'loc': ('body', 'payload', 'last_name'), 'msg': 'Field required'},
        ]
        self.assertEqual(first_validation_message(errors), "String should have at least 1 character")

    def test_value_error_prefix_stripped(self):
        errors = [{'loc': ('body', 'payload', 'email'), 'msg': 'Value error, Invalid email'}]
        self.assertEqual(first_validation_message(errors), "Invalid email")

    def test_empty(self):
        self.assertEqual(first_validation_message([]), "Invalid request")


class StatusCodeTest(SimpleTestCase):

    def test_status_codes(self):
        self.assertEqual(DomainValidationError("x").status_code, 400)
        self.assertEqual(ConflictError("x").status_code, 400)
        self.assertEqual(NotFoundError("x").status_code, 404)
        self.assertEqual(PermissionDeniedError("x").status_code, 403)
        self.assertEqual(AuthenticationError("x").status_code, 401)


class ErrorResponseTest(TestCase):

    def test_malformed_json_body(self):
        response = self.client.post('/api/auth/login', data="{not json", content_type='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('message', response.json())

    def test_unknown_resource(self):
        self.assertEqual(self.client.get('/api/organizations/does-not-exist').json(),
                         {"message": "Organization not found"})


class TaskServiceTest(SimpleTestCase):

    def test_local_backend_in_tests(self):
        self.assertIsInstance(_get_backend(), LocalTaskService)

    def test_unknown_task_is_ignored_locally(self):
        task_id = LocalTaskService().send_task("no_such_task", {})
        self.assertTrue(task_id)

    def test_unknown_backend(self):
        with self.settings(TASK_BACKEND='carrier-pigeon'):
            with self.assertRaises(ValueError):
                TaskService.deliver_webhook(uuid4(), "booking.created", "{}")
