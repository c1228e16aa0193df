from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time

from django.conf import settings

from orgs.models import Club, ClubBusinessHours, ClubSpecialHours


@dataclass(frozen=True)
class BusinessWindow:
    """Opening window for a single day, in minutes since midnight."""

    open_minutes: int
    close_minutes: int

    def contains(self, start_minutes: int, duration_minutes: int) -> bool:
        # No wrap past midnight: a slot ending after 24:00 never fits.
        return (
            start_minutes >= self.open_minutes
            and start_minutes + duration_minutes <= self.close_minutes
        )


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def default_business_window() -> BusinessWindow:
    return BusinessWindow(
        open_minutes=settings.BOOKING_DEFAULT_OPEN_HOUR * 60,
        close_minutes=settings.BOOKING_DEFAULT_CLOSE_HOUR * 60,
    )


def resolve_business_window(club: Club | int, day: date) -> BusinessWindow | None:
    """
    Return the opening window of ``club`` on ``day`` or ``None`` when closed.

    A special-hours entry for the date wins over the weekly schedule; clubs
    without a configured schedule use the default booking hours.
    """
    club_id = club.pk if isinstance(club, Club) else club

    special = ClubSpecialHours.objects.filter(club_id=club_id, date=day).first()
    if special is not None:
        if special.is_closed or special.open_time is None or special.close_time is None:
            return None
        return BusinessWindow(_minutes(special.open_time), _minutes(special.close_time))

    weekly = ClubBusinessHours.objects.filter(
        club_id=club_id, day_of_week=day.weekday()
    ).first()
    if weekly is not None:
        if weekly.is_closed or weekly.open_time is None or weekly.close_time is None:
            return None
        return BusinessWindow(_minutes(weekly.open_time), _minutes(weekly.close_time))

    return default_business_window()
