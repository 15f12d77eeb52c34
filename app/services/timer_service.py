"""
Session timer service.
Start, pause, resume and reset the single live-session timer. Transitions
that do not apply to the current state (pausing a stopped timer, starting a
running one) leave the timer unchanged.
"""
import logging
from datetime import datetime
from typing import Optional

from app.models import SessionTimer

logger = logging.getLogger(__name__)


def get_timer(session) -> SessionTimer:
    """Load the timer row, creating it on first use."""
    timer = session.query(SessionTimer).order_by(SessionTimer.id.asc()).first()
    if timer:
        return timer

    timer = SessionTimer()
    session.add(timer)
    session.flush()
    return timer


def _apply(session, action: str, now: Optional[datetime]) -> SessionTimer:
    now = now or datetime.now()
    try:
        timer = get_timer(session)
        if action == 'reset':
            timer.reset()
            changed = True
        else:
            changed = getattr(timer, action)(now)
        session.commit()
    except Exception:
        session.rollback()
        raise

    if changed:
        logger.info(f"Session timer {action} at {SessionTimer.format_elapsed(timer.elapsed(now))}")
    return timer


def start_timer(session, now: Optional[datetime] = None) -> SessionTimer:
    return _apply(session, 'start', now)


def pause_timer(session, now: Optional[datetime] = None) -> SessionTimer:
    return _apply(session, 'pause', now)


def resume_timer(session, now: Optional[datetime] = None) -> SessionTimer:
    return _apply(session, 'resume', now)


def reset_timer(session, now: Optional[datetime] = None) -> SessionTimer:
    """Stop the timer and clear it to 00:00:00."""
    return _apply(session, 'reset', now)
