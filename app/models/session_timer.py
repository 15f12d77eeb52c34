"""Live session timer model."""
from datetime import datetime
from typing import Optional
from sqlalchemy import Column, Integer, Float, Boolean, DateTime
from app.database import Base


class SessionTimer(Base):
    """Elapsed time of the current selling session.

    ``elapsed_seconds`` holds the time accumulated up to ``last_update``;
    while running, the time since ``last_update`` is added on read, so a
    restart of the server keeps counting unless the timer was paused.
    """

    __tablename__ = 'session_timer'

    id = Column(Integer, primary_key=True, autoincrement=True)
    elapsed_seconds = Column(Float, nullable=False, default=0.0)
    is_session_active = Column(Boolean, nullable=False, default=False)
    is_running = Column(Boolean, nullable=False, default=False)
    is_manually_paused = Column(Boolean, nullable=False, default=False)
    last_update = Column(DateTime, nullable=True)

    def __init__(self, **kwargs):
        kwargs.setdefault('elapsed_seconds', 0.0)
        kwargs.setdefault('is_session_active', False)
        kwargs.setdefault('is_running', False)
        kwargs.setdefault('is_manually_paused', False)
        super().__init__(**kwargs)

    @property
    def is_paused(self) -> bool:
        return bool(self.is_manually_paused) and self.elapsed_seconds > 0

    def elapsed(self, now: datetime) -> float:
        """Seconds elapsed as of ``now``."""
        total = self.elapsed_seconds or 0.0
        if self.is_running and self.last_update is not None:
            total += max(0.0, (now - self.last_update).total_seconds())
        return total

    def start(self, now: datetime) -> bool:
        if self.is_running:
            return False
        self.is_session_active = True
        self.is_manually_paused = False
        self.is_running = True
        self.last_update = now
        return True

    def pause(self, now: datetime) -> bool:
        if not self.is_running:
            return False
        self.elapsed_seconds = self.elapsed(now)
        self.is_running = False
        self.is_manually_paused = True
        self.last_update = now
        return True

    def resume(self, now: datetime) -> bool:
        # Only a paused timer, or one with time on it, can resume
        if self.is_running or not (self.is_paused or self.elapsed_seconds > 0):
            return False
        self.is_manually_paused = False
        self.is_session_active = True
        self.is_running = True
        self.last_update = now
        return True

    def reset(self) -> None:
        self.elapsed_seconds = 0.0
        self.is_session_active = False
        self.is_running = False
        self.is_manually_paused = False
        self.last_update = None

    @staticmethod
    def format_elapsed(seconds: float) -> str:
        """HH:MM:SS, e.g. 3725 -> "01:02:05"."""
        whole = int(seconds)
        return f"{whole // 3600:02d}:{(whole % 3600) // 60:02d}:{whole % 60:02d}"

    def to_dict(self, now: Optional[datetime] = None):
        elapsed = self.elapsed(now or datetime.now())
        return {
            'elapsed_seconds': elapsed,
            'formatted': self.format_elapsed(elapsed),
            'is_session_active': bool(self.is_session_active),
            'is_running': bool(self.is_running),
            'is_paused': self.is_paused,
            'last_update': self.last_update.isoformat() if self.last_update else None,
        }

    def __repr__(self):
        return f"<SessionTimer(elapsed={self.elapsed_seconds}, running={self.is_running})>"
