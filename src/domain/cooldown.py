"""
Resend cooldown - Per-email gate on issuing a new code.

Derived entirely from the current code's creation time; there is no
separate counter store.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from .models import VerificationCode


@dataclass(frozen=True)
class CooldownDecision:
    allowed: bool
    retry_after_seconds: int
    available_at: datetime


class ResendCooldown:
    def __init__(self, window: timedelta) -> None:
        self._window = window

    def check(self, current: VerificationCode | None, now: datetime) -> CooldownDecision:
        """Allowed when there is no code or ``now >= created_at + window``."""
        if current is None:
            return CooldownDecision(True, 0, now)
        available_at = current.created_at + self._window
        if now >= available_at:
            return CooldownDecision(True, 0, available_at)
        wait = math.ceil((available_at - now).total_seconds())
        return CooldownDecision(False, max(1, wait), available_at)

    def cutoff(self, now: datetime) -> datetime:
        """Latest creation time a prior code may have for a resend to proceed."""
        return now - self._window
