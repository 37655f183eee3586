"""Tests for the timeout state machine."""

import pytest

from edge_status.errors import TimerConflictError
from edge_status.timeout import SessionState, TimeoutTracker
from edge_status.timeout.countdown import COUNTDOWN_PREFIX, TIMED_OUT_MESSAGE


def authenticated_tracker(**kwargs):
    kwargs.setdefault("min_timeout", -1)
    kwargs.setdefault("max_timeout", -1)
    return TimeoutTracker("alice", mfa_enabled=True, authenticated=True, **kwargs)


class TestInitialState:
    def test_authenticated(self):
        t = authenticated_tracker(min_timeout=5000, max_timeout=7200)
        assert t.state == SessionState.AUTHENTICATED_STABLE
        assert t.countdown.remaining == 5000
        assert t.deadline.remaining == 7200

    def test_unauthenticated_runs_no_timers(self):
        t = TimeoutTracker("alice", mfa_enabled=True, authenticated=False, min_timeout=100, max_timeout=200)
        assert t.state == SessionState.UNAUTHENTICATED
        assert not t.countdown.active
        assert not t.deadline.active

    def test_mfa_disabled_is_stable(self):
        t = TimeoutTracker("bob", mfa_enabled=False, authenticated=True, min_timeout=100, max_timeout=200,
                           service_remaining=[10])
        assert t.state == SessionState.STABLE
        assert not t.countdown.active
        for _ in range(20):
            t.tick()
        assert not t.timing_out
        assert t.timeout_message == ""

    @pytest.mark.parametrize("value", [-1, 0, -30])
    def test_non_positive_timeouts_disable_timers(self, value):
        t = authenticated_tracker(min_timeout=value, max_timeout=value)
        assert not t.countdown.active
        assert not t.deadline.active
        assert t.state == SessionState.AUTHENTICATED_STABLE


class TestTransitions:
    def test_warning_when_countdown_enters_window(self):
        t = authenticated_tracker(min_timeout=1261)
        assert t.tick() == SessionState.AUTHENTICATED_STABLE  # 1260 left
        assert t.tick() == SessionState.AUTHENTICATED_WARNING  # 1259 left
        assert t.timing_out
        assert t.timeout_message == COUNTDOWN_PREFIX + "20 minutes 59 seconds"

    def test_max_timeout_expires_session(self):
        t = authenticated_tracker(max_timeout=5)
        for _ in range(4):
            t.tick()
        assert t.state == SessionState.AUTHENTICATED_STABLE
        t.tick()
        assert t.state == SessionState.UNAUTHENTICATED
        assert t.authenticated is False
        assert not t.countdown.active
        assert t.timeout_message == TIMED_OUT_MESSAGE

    def test_warning_then_expiry(self):
        t = authenticated_tracker(min_timeout=1262, max_timeout=5)
        states = [t.tick() for _ in range(5)]
        assert states[-2] == SessionState.AUTHENTICATED_WARNING
        assert states[-1] == SessionState.UNAUTHENTICATED

    def test_countdown_reaching_zero(self):
        t = authenticated_tracker(min_timeout=2)
        t.tick()
        t.tick()
        assert t.timing_out
        assert t.timeout_message == TIMED_OUT_MESSAGE
        t.tick()
        assert t.timeout_message == TIMED_OUT_MESSAGE

    def test_reauthentication_resets_both_timers(self):
        t = authenticated_tracker(min_timeout=1262, max_timeout=5)
        for _ in range(5):
            t.tick()
        assert t.state == SessionState.UNAUTHENTICATED

        t.authentication_succeeded()
        assert t.state == SessionState.AUTHENTICATED_STABLE
        assert not t.timing_out
        assert t.deadline.remaining == 5
        assert t.countdown.remaining == 1262
        assert t.timeout_message.startswith(COUNTDOWN_PREFIX)

    def test_reauthentication_clears_service_countdowns(self):
        t = authenticated_tracker(min_timeout=1260, max_timeout=5, service_remaining=[30])
        for _ in range(5):
            t.tick()
        assert t.state == SessionState.UNAUTHENTICATED

        t.authentication_succeeded()
        assert t.state == SessionState.AUTHENTICATED_STABLE
        assert not t.timing_out
        assert t.service_remaining == [-1]
        assert t.timeout_message != TIMED_OUT_MESSAGE

    def test_reauthentication_with_service_at_zero(self):
        t = authenticated_tracker(max_timeout=5, service_remaining=[2])
        for _ in range(5):
            t.tick()
        t.authentication_succeeded()
        assert t.state == SessionState.AUTHENTICATED_STABLE
        assert t.timeout_message == ""

    def test_ticks_ignored_while_unauthenticated(self):
        t = TimeoutTracker("alice", mfa_enabled=True, authenticated=False, min_timeout=10, max_timeout=3)
        for _ in range(10):
            assert t.tick() == SessionState.UNAUTHENTICATED

    def test_service_remaining_counts_down(self):
        t = authenticated_tracker(service_remaining=[2, -1])
        assert t.remaining == 2
        t.tick()
        t.tick()
        t.tick()
        assert t.service_remaining == [0, -1]
        assert t.timing_out


class TestTimerControl:
    def test_stop_and_resume(self):
        t = authenticated_tracker(min_timeout=100, max_timeout=200)
        t.tick()
        t.stop()
        assert t.stopped
        assert not t.countdown.active and not t.deadline.active
        t.tick()
        assert t.countdown.remaining == 99
        t.resume()
        assert t.countdown.remaining == 100
        assert t.deadline.remaining == 200

    def test_reset_restarts_exactly_once(self):
        t = authenticated_tracker(min_timeout=100, max_timeout=200)
        t.reset()
        assert t.countdown.starts == 2
        assert t.deadline.starts == 2
        assert t.countdown.active and t.deadline.active

    def test_conflict_raises_when_strict(self):
        t = authenticated_tracker(min_timeout=100, max_timeout=200, strict=True)
        with pytest.raises(TimerConflictError):
            t.start_timers()

    def test_conflict_recovered_when_not_strict(self, log_messages):
        t = authenticated_tracker(min_timeout=100, max_timeout=200)
        for _ in range(10):
            t.tick()
        t.start_timers()
        assert t.countdown.remaining == 100
        assert t.deadline.remaining == 200
        assert any("force-canceling" in m for m in log_messages)


class TestSync:
    def test_identical_snapshot_preserves_progress(self):
        t = authenticated_tracker(min_timeout=100, max_timeout=200)
        for _ in range(10):
            t.tick()
        t.sync(True, True, 100, 200, [], fresh=False)
        assert t.countdown.remaining == 90
        assert t.deadline.remaining == 190

    def test_changed_timeouts_restart(self):
        t = authenticated_tracker(min_timeout=100, max_timeout=200)
        t.tick()
        t.sync(True, True, 300, 400, [])
        assert t.countdown.remaining == 300
        assert t.deadline.remaining == 400

    def test_control_plane_reports_mfa_needed(self):
        t = authenticated_tracker(min_timeout=100, max_timeout=200)
        t.sync(True, False, 100, 200, [])
        assert t.state == SessionState.UNAUTHENTICATED
        assert not t.deadline.active

    def test_control_plane_reports_reauthenticated(self):
        t = TimeoutTracker("alice", mfa_enabled=True, authenticated=False, min_timeout=100, max_timeout=200)
        t.sync(True, True, 100, 200, [])
        assert t.state == SessionState.AUTHENTICATED_STABLE
        assert t.deadline.remaining == 200

    def test_local_expiry_survives_identical_snapshot(self):
        t = authenticated_tracker(max_timeout=2)
        t.tick()
        t.tick()
        t.sync(True, True, -1, 2, [], fresh=False)
        assert t.state == SessionState.UNAUTHENTICATED

    def test_mfa_disabled_stops_timers(self):
        t = authenticated_tracker(min_timeout=100, max_timeout=200, service_remaining=[30])
        t.sync(False, True, 100, 200, [30])
        assert t.state == SessionState.STABLE
        assert not t.timing_out
        assert not t.countdown.active

    def test_control_plane_confirming_local_reauth_keeps_deadline(self):
        t = TimeoutTracker("alice", mfa_enabled=True, authenticated=False, min_timeout=100, max_timeout=10)
        t.authentication_succeeded()
        for _ in range(6):
            t.tick()
        t.sync(True, True, 100, 10, [], fresh=True)
        assert t.deadline.remaining == 4
        assert t.deadline.starts == 1

    def test_fresh_snapshot_after_reauth_supplies_service_times(self):
        t = TimeoutTracker("alice", mfa_enabled=True, authenticated=False, min_timeout=-1, max_timeout=-1,
                           service_remaining=[30])
        t.sync(True, True, -1, -1, [600], fresh=True)
        assert t.service_remaining == [600]
        assert t.state == SessionState.AUTHENTICATED_WARNING
