"""
Tests for scheduling/lifecycle.py and scheduling/policy.py
"""
import unittest
from datetime import date, datetime, timedelta

from vetclinic.errors import InvalidTransition, Unauthorized
from vetclinic.scheduling import lifecycle, policy
from vetclinic.scheduling.policy import Actor

DAY = date(2026, 10, 20)


class TestTransitions(unittest.TestCase):

    def test_allowed_edges(self):
        self.assertEqual(lifecycle.next_status('pending', 'confirm'), 'confirmed')
        self.assertEqual(lifecycle.next_status('confirmed', 'start'), 'in_progress')
        self.assertEqual(lifecycle.next_status('in_progress', 'complete'), 'completed')
        self.assertEqual(lifecycle.next_status('confirmed', 'complete'), 'completed')
        self.assertEqual(lifecycle.next_status('pending', 'cancel'), 'cancelled')
        self.assertEqual(lifecycle.next_status('confirmed', 'reschedule'), 'pending')
        self.assertEqual(lifecycle.next_status('confirmed', 'mark_no_show'), 'no_show')

    def test_every_edge_outside_the_table_is_rejected(self):
        for status in lifecycle.STATUSES:
            for action, (sources, _) in lifecycle.TRANSITIONS.items():
                if status in sources:
                    continue
                with self.subTest(status=status, action=action):
                    with self.assertRaises(InvalidTransition):
                        lifecycle.next_status(status, action)

    def test_terminal_statuses_allow_nothing(self):
        for status in lifecycle.TERMINAL_STATUSES:
            self.assertEqual(lifecycle.allowed_actions(status), [])

    def test_unknown_action(self):
        with self.assertRaises(InvalidTransition):
            lifecycle.next_status('pending', 'archive')

    def test_only_cancelled_is_inactive(self):
        self.assertFalse(lifecycle.is_active('cancelled'))
        self.assertTrue(lifecycle.is_active('no_show'))
        self.assertTrue(lifecycle.is_active('completed'))


class TestTimePredicates(unittest.TestCase):

    def test_starts_at(self):
        self.assertEqual(lifecycle.starts_at(DAY, '09:30'), datetime(2026, 10, 20, 9, 30))

    def test_cancellation_needs_two_hours_notice(self):
        start = datetime(2026, 10, 20, 9, 0)

        self.assertTrue(lifecycle.can_be_cancelled('confirmed', DAY, '09:00', start - timedelta(hours=3)))
        self.assertTrue(lifecycle.can_be_cancelled('confirmed', DAY, '09:00', start - timedelta(hours=2)))
        self.assertFalse(lifecycle.can_be_cancelled('confirmed', DAY, '09:00', start - timedelta(hours=1)))
        self.assertFalse(lifecycle.can_be_cancelled('completed', DAY, '09:00', start - timedelta(days=1)))

    def test_reschedule_only_before_start(self):
        start = datetime(2026, 10, 20, 9, 0)

        self.assertTrue(lifecycle.can_be_rescheduled('pending', DAY, '09:00', start - timedelta(minutes=5)))
        self.assertFalse(lifecycle.can_be_rescheduled('pending', DAY, '09:00', start + timedelta(minutes=5)))
        self.assertFalse(lifecycle.can_be_rescheduled('in_progress', DAY, '09:00', start - timedelta(days=1)))

    def test_no_show_only_after_start(self):
        start = datetime(2026, 10, 20, 9, 0)

        self.assertFalse(lifecycle.can_be_marked_no_show('confirmed', DAY, '09:00', start - timedelta(minutes=1)))
        self.assertTrue(lifecycle.can_be_marked_no_show('confirmed', DAY, '09:00', start + timedelta(minutes=1)))
        self.assertFalse(lifecycle.can_be_marked_no_show('pending', DAY, '09:00', start + timedelta(hours=1)))

    def test_describe_time_until(self):
        start = datetime(2026, 10, 20, 9, 0)

        self.assertEqual(lifecycle.describe_time_until(DAY, '09:00', start - timedelta(days=3)), '3 days')
        self.assertEqual(lifecycle.describe_time_until(DAY, '09:00', start - timedelta(hours=2)), '2 hours')
        self.assertEqual(lifecycle.describe_time_until(DAY, '09:00', start - timedelta(minutes=20)), '20 minutes')
        self.assertEqual(lifecycle.describe_time_until(DAY, '09:00', start + timedelta(minutes=1)), 'past appointment')


class TestPolicy(unittest.TestCase):

    def test_owner_capabilities(self):
        owner = Actor(1, 'customer')

        self.assertTrue(policy.can(owner, policy.BOOK, owner_id=1))
        self.assertTrue(policy.can(owner, policy.CANCEL, owner_id=1))
        self.assertFalse(policy.can(owner, policy.MANAGE, owner_id=1))
        self.assertFalse(policy.can(owner, policy.VIEW, owner_id=2))

    def test_veterinarian_manages_but_does_not_book(self):
        vet = Actor(5, 'veterinarian')

        self.assertTrue(policy.can(vet, policy.MANAGE))
        self.assertTrue(policy.can(vet, policy.CANCEL, owner_id=1))
        self.assertFalse(policy.can(vet, policy.BOOK, owner_id=1))
        self.assertFalse(policy.can(vet, policy.REMIND))

    def test_admin_can_do_everything(self):
        admin = Actor(9, 'admin')

        for capability in (policy.BOOK, policy.MANAGE, policy.REMIND, policy.VIEW_STATS):
            self.assertTrue(policy.can(admin, capability, owner_id=1))

    def test_unknown_role_has_no_capabilities(self):
        self.assertEqual(policy.capabilities_for(Actor(1, 'guest'), owner_id=1), set())

    def test_authorize_raises(self):
        with self.assertRaises(Unauthorized):
            policy.authorize(Actor(1, 'customer'), policy.VIEW, owner_id=2)

    def test_cancelled_by_label(self):
        self.assertEqual(Actor(1, 'customer').cancelled_by_label, 'customer')
        self.assertEqual(Actor(2, 'admin').cancelled_by_label, 'veterinarian')
        self.assertEqual(policy.SYSTEM_ACTOR.cancelled_by_label, 'system')


if __name__ == '__main__':
    unittest.main()
