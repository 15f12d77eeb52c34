"""
Unit tests for the live session timer.
"""

import pytest
from datetime import datetime, timedelta

from app.models import SessionTimer
from app.services import timer_service

START = datetime(2025, 3, 31, 19, 0, 0)


def _at(seconds):
    return START + timedelta(seconds=seconds)


@pytest.fixture
def timer():
    return SessionTimer()


class TestTimerModel:
    """Tests for SessionTimer transitions."""

    def test_new_timer_is_stopped(self, timer):
        assert timer.elapsed(START) == 0
        assert not timer.is_running
        assert not timer.is_paused
        assert timer.to_dict(START)['formatted'] == '00:00:00'

    def test_running_timer_counts_wall_clock(self, timer):
        assert timer.start(START) is True
        assert timer.is_session_active
        assert timer.elapsed(_at(90)) == 90

    def test_start_twice_is_ignored(self, timer):
        timer.start(START)
        assert timer.start(_at(30)) is False
        assert timer.elapsed(_at(60)) == 60

    def test_pause_freezes_elapsed(self, timer):
        timer.start(START)
        assert timer.pause(_at(125)) is True
        assert timer.is_paused
        assert timer.elapsed(_at(5000)) == 125

    def test_pause_when_stopped_is_ignored(self, timer):
        assert timer.pause(START) is False
        assert not timer.is_manually_paused

    def test_resume_continues_from_paused_time(self, timer):
        timer.start(START)
        timer.pause(_at(60))
        assert timer.resume(_at(600)) is True
        assert not timer.is_paused
        assert timer.elapsed(_at(630)) == 90

    def test_resume_without_elapsed_time_is_ignored(self, timer):
        assert timer.resume(START) is False
        assert not timer.is_running

    def test_reset_clears_everything(self, timer):
        timer.start(START)
        timer.pause(_at(60))
        timer.reset()
        assert timer.elapsed(_at(120)) == 0
        assert not timer.is_session_active
        assert not timer.is_paused
        assert timer.last_update is None

    @pytest.mark.parametrize('seconds, expected', [
        (0, '00:00:00'),
        (59.9, '00:00:59'),
        (3725, '01:02:05'),
        (36000, '10:00:00'),
    ])
    def test_format_elapsed(self, seconds, expected):
        assert SessionTimer.format_elapsed(seconds) == expected


class TestTimerService:
    """Tests for the persisted timer."""

    def test_get_timer_is_idempotent(self, session):
        first = timer_service.get_timer(session)
        second = timer_service.get_timer(session)
        assert first.id == second.id
        assert session.query(SessionTimer).count() == 1

    def test_state_survives_new_session(self, session):
        timer_service.start_timer(session, now=START)
        timer_service.pause_timer(session, now=_at(42))
        session.remove()

        timer = timer_service.get_timer(session)
        assert timer.is_paused
        assert timer.elapsed(_at(1000)) == 42

    def test_running_timer_keeps_counting_after_reload(self, session):
        timer_service.start_timer(session, now=START)
        session.remove()

        timer = timer_service.get_timer(session)
        assert timer.is_running
        assert timer.elapsed(_at(3600)) == 3600

    def test_reset(self, session):
        timer_service.start_timer(session, now=START)
        timer = timer_service.reset_timer(session, now=_at(10))
        assert timer.elapsed(_at(20)) == 0
        assert not timer.is_running
