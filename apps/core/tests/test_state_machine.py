from django.test import SimpleTestCase

from apps.bookings.models import BOOKING_TRANSITIONS, QUOTE_TRANSITIONS, BookingStatus, QuoteStatus
from apps.core.exceptions import InvalidTransitionError
from apps.core.state_machine import StateMachine
from apps.fleet.models import INVENTORY_TRANSITIONS, DumpsterStatus


class StateMachineTest(SimpleTestCase):

    def setUp(self):
        self.machine = StateMachine('door', {
            'closed': ['open', 'locked'],
            'open': ['closed'],
            'locked': [],
        })

    def test_allowed_change(self):
        self.assertTrue(self.machine.check('closed', 'open'))

    def test_same_status_is_no_change(self):
        self.assertFalse(self.machine.check('open', 'open'))

    def test_disallowed_change_raises(self):
        with self.assertRaises(InvalidTransitionError) as raised:
            self.machine.check('open', 'locked')
        self.assertEqual(raised.exception.status_code, 409)
        self.assertEqual(raised.exception.message, "Cannot change door status from open to locked")

    def test_states_without_targets(self):
        self.assertEqual(self.machine.allowed_targets('locked'), frozenset())
        self.assertEqual(self.machine.allowed_targets('unknown'), frozenset())
        self.assertEqual(self.machine.allowed_targets('closed'), frozenset({'open', 'locked'}))


class LifecycleTablesTest(SimpleTestCase):

    def test_booking_terminal_states(self):
        self.assertEqual(BOOKING_TRANSITIONS.allowed_targets(BookingStatus.COMPLETED), frozenset())
        self.assertEqual(BOOKING_TRANSITIONS.allowed_targets(BookingStatus.CANCELLED), frozenset())

    def test_every_open_booking_can_be_cancelled(self):
        for status in (BookingStatus.PENDING, BookingStatus.CONFIRMED,
                       BookingStatus.DELIVERED, BookingStatus.PICKED_UP):
            self.assertTrue(BOOKING_TRANSITIONS.can_transition(status, BookingStatus.CANCELLED))

    def test_booking_cannot_skip_delivery(self):
        self.assertFalse(BOOKING_TRANSITIONS.can_transition(BookingStatus.CONFIRMED, BookingStatus.PICKED_UP))

    def test_quote_flow(self):
        self.assertTrue(QUOTE_TRANSITIONS.can_transition(QuoteStatus.PENDING, QuoteStatus.QUOTED))
        self.assertFalse(QUOTE_TRANSITIONS.can_transition(QuoteStatus.PENDING, QuoteStatus.ACCEPTED))

    def test_retired_units_stay_retired(self):
        self.assertEqual(INVENTORY_TRANSITIONS.allowed_targets(DumpsterStatus.RETIRED), frozenset())
        self.assertFalse(INVENTORY_TRANSITIONS.can_transition(DumpsterStatus.RENTED, DumpsterStatus.RETIRED))
