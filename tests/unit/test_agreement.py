import threading
import unittest
from unittest.mock import MagicMock

from sysmanager.agreement import SchemaAgreementWaiter
from sysmanager.exceptions import (
    InvalidAttributeError,
    SchemaAgreementCancelled,
    SchemaAgreementTimeout,
)


class FakeClock:
    """Monotonic clock whose sleep() just advances time."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class TestSchemaAgreementWaiter(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()

    def make_waiter(self, describe_versions, **kwargs):
        kwargs.setdefault('poll_interval', 0.5)
        kwargs.setdefault('timeout', 10.0)
        return SchemaAgreementWaiter(describe_versions, clock=self.clock, sleep=self.clock.sleep, **kwargs)

    def test_already_agreed_returns_without_sleeping(self):
        describe = MagicMock(return_value={'v1': ['10.0.0.1', '10.0.0.2']})
        self.make_waiter(describe).wait()

        self.assertEqual(describe.call_count, 1)
        self.assertEqual(self.clock.sleeps, [])

    def test_converges_on_second_poll(self):
        describe = MagicMock(side_effect=[
            {'v1': ['A', 'B'], 'v2': ['C']},
            {'v2': ['A', 'B', 'C']},
        ])
        self.make_waiter(describe).wait()

        self.assertEqual(describe.call_count, 2)
        self.assertEqual(self.clock.sleeps, [0.5])

    def test_never_converging_raises_after_deadline(self):
        split = {'v1': ['A'], 'v2': ['B']}
        describe = MagicMock(return_value=split)

        with self.assertRaises(SchemaAgreementTimeout) as ctx:
            self.make_waiter(describe, timeout=2.0).wait()

        self.assertGreaterEqual(self.clock.now, 2.0)
        self.assertEqual(ctx.exception.versions, split)
        self.assertEqual(ctx.exception.attempts, describe.call_count)
        # last sleep is clipped to the time remaining
        self.assertLessEqual(sum(self.clock.sleeps), 2.0)

    def test_timeout_is_catchable_as_builtin(self):
        describe = MagicMock(return_value={'v1': ['A'], 'v2': ['B']})
        with self.assertRaises(TimeoutError):
            self.make_waiter(describe, timeout=0).wait()

    def test_max_attempts_caps_polls(self):
        describe = MagicMock(return_value={'v1': ['A'], 'v2': ['B']})

        with self.assertRaises(SchemaAgreementTimeout) as ctx:
            self.make_waiter(describe, timeout=None, max_attempts=3).wait()

        self.assertEqual(describe.call_count, 3)
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertEqual(len(self.clock.sleeps), 2)

    def test_preset_cancel_event_aborts_after_first_poll(self):
        describe = MagicMock(return_value={'v1': ['A'], 'v2': ['B']})
        cancel = threading.Event()
        cancel.set()

        with self.assertRaises(SchemaAgreementCancelled):
            self.make_waiter(describe).wait(cancel_event=cancel)

        self.assertEqual(describe.call_count, 1)

    def test_cancel_event_wakes_sleep(self):
        describe = MagicMock(return_value={'v1': ['A'], 'v2': ['B']})
        cancel = MagicMock()
        cancel.is_set.return_value = False
        cancel.wait.return_value = True

        with self.assertRaises(SchemaAgreementCancelled):
            self.make_waiter(describe).wait(cancel_event=cancel)

        cancel.wait.assert_called_once_with(0.5)
        # the cancel event replaces the sleep function
        self.assertEqual(self.clock.sleeps, [])

    def test_cancelled_is_a_timeout(self):
        self.assertTrue(issubclass(SchemaAgreementCancelled, SchemaAgreementTimeout))

    def test_agreement_check_happens_before_cancel_check(self):
        describe = MagicMock(return_value={'v1': ['A']})
        cancel = threading.Event()
        cancel.set()

        self.make_waiter(describe).wait(cancel_event=cancel)
        self.assertEqual(describe.call_count, 1)

    def test_unreachable_nodes_count_as_disagreement(self):
        describe = MagicMock(side_effect=[
            {'v1': ['A', 'B'], 'UNREACHABLE': ['C']},
            {'v1': ['A', 'B', 'C']},
        ])
        self.make_waiter(describe).wait()
        self.assertEqual(describe.call_count, 2)

    def test_rejects_bad_configuration(self):
        describe = MagicMock()
        with self.assertRaises(InvalidAttributeError):
            SchemaAgreementWaiter(describe, poll_interval=0)
        with self.assertRaises(InvalidAttributeError):
            SchemaAgreementWaiter(describe, timeout=-1)
        with self.assertRaises(InvalidAttributeError):
            SchemaAgreementWaiter(describe, max_attempts=0)

    def test_remote_errors_propagate(self):
        describe = MagicMock(side_effect=RuntimeError("boom"))
        with self.assertRaises(RuntimeError):
            self.make_waiter(describe).wait()


if __name__ == '__main__':
    unittest.main()
