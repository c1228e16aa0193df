from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Mapping, Optional, Sequence

from bookings.models import Booking
from courts.models import Court
from courts.pricing import quote_slot_price
from orgs.models import Club
from orgs.services.business_hours import BusinessWindow, resolve_business_window

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):[0-5]\d$")

DEFAULT_DURATION_MINUTES = 60
STANDARD_DURATIONS = (60, 90, 120, 150, 180)
ALTERNATIVE_STEP_MINUTES = 30
ALTERNATIVE_RANGE_MINUTES = 120
MAX_ALTERNATIVE_SLOTS = 5


class InvalidSlotQuery(ValueError):
    """Raised when an availability query cannot be parsed."""


@dataclass(frozen=True)
class SlotQuery:
    day: date
    start_minutes: int
    duration_minutes: int
    court_type: Optional[str] = None

    def bounds(self, start_minutes: Optional[int] = None, duration_minutes: Optional[int] = None):
        start_minutes = self.start_minutes if start_minutes is None else start_minutes
        duration_minutes = self.duration_minutes if duration_minutes is None else duration_minutes
        # Slot times are wall-clock UTC.
        midnight = datetime.combine(self.day, time.min, tzinfo=timezone.utc)
        slot_start = midnight + timedelta(minutes=start_minutes)
        return slot_start, slot_start + timedelta(minutes=duration_minutes)


@dataclass
class AvailabilityResult:
    available_courts: List[dict] = field(default_factory=list)
    alternative_durations: List[int] = field(default_factory=list)
    alternative_time_slots: List[dict] = field(default_factory=list)

    def as_payload(self) -> dict:
        payload: dict = {"availableCourts": self.available_courts}
        if self.alternative_durations:
            payload["alternativeDurations"] = self.alternative_durations
        elif self.alternative_time_slots:
            payload["alternativeTimeSlots"] = self.alternative_time_slots
        return payload


def _parse_minutes(value: str, label: str) -> int:
    if not TIME_PATTERN.match(value):
        raise InvalidSlotQuery(f"Invalid {label} format. Use HH:MM.")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_slot_query(params: Mapping[str, str]) -> SlotQuery:
    """
    Validate the query string of an availability request.

    ``start`` may also be passed as ``from``. When ``to`` is present it wins
    over ``duration``.
    """
    date_value = params.get("date")
    start_value = params.get("start") or params.get("from")
    if not date_value or not start_value:
        raise InvalidSlotQuery("Missing required parameters: date and start.")

    if not DATE_PATTERN.match(date_value):
        raise InvalidSlotQuery("Invalid date format. Use YYYY-MM-DD.")
    try:
        day = date.fromisoformat(date_value)
    except ValueError as exc:
        raise InvalidSlotQuery("Invalid date format. Use YYYY-MM-DD.") from exc

    start_minutes = _parse_minutes(start_value, "start time")

    to_value = params.get("to")
    duration_value = params.get("duration")
    if to_value:
        end_minutes = _parse_minutes(to_value, "end time")
        duration = end_minutes - start_minutes
        if duration <= 0:
            raise InvalidSlotQuery("End time must be after the start time.")
    elif duration_value:
        try:
            duration = int(duration_value)
        except (TypeError, ValueError) as exc:
            raise InvalidSlotQuery("Duration must be a positive integer.") from exc
        if duration <= 0:
            raise InvalidSlotQuery("Duration must be a positive integer.")
    else:
        duration = DEFAULT_DURATION_MINUTES

    return SlotQuery(
        day=day,
        start_minutes=start_minutes,
        duration_minutes=duration,
        court_type=params.get("courtType") or None,
    )


def _free_courts(
    courts: Sequence[Court],
    bookings_by_court: Dict[int, List[Booking]],
    slot_start: datetime,
    slot_end: datetime,
) -> List[Court]:
    free = []
    for court in courts:
        overlapping = any(
            booking.start < slot_end and booking.end > slot_start
            for booking in bookings_by_court.get(court.id, [])
        )
        if not overlapping:
            free.append(court)
    return free


def _serialize_court(court: Court, price_cents: int) -> dict:
    return {
        "id": court.id,
        "name": court.name,
        "slug": court.slug or None,
        "type": court.type or None,
        "surface": court.surface or None,
        "indoor": court.indoor,
        "defaultPriceCents": court.default_price_cents,
        "priceCents": price_cents,
    }


def _shorter_durations(
    query: SlotQuery,
    window: BusinessWindow,
    courts: Sequence[Court],
    bookings_by_court: Dict[int, List[Booking]],
) -> List[int]:
    durations = []
    for duration in sorted(STANDARD_DURATIONS, reverse=True):
        if duration >= query.duration_minutes:
            continue
        if not window.contains(query.start_minutes, duration):
            continue
        slot_start, slot_end = query.bounds(duration_minutes=duration)
        if _free_courts(courts, bookings_by_court, slot_start, slot_end):
            durations.append(duration)
    return durations


def _alternative_time_slots(
    query: SlotQuery,
    window: BusinessWindow,
    courts: Sequence[Court],
    bookings_by_court: Dict[int, List[Booking]],
) -> List[dict]:
    candidates = []
    for offset in range(
        -ALTERNATIVE_RANGE_MINUTES,
        ALTERNATIVE_RANGE_MINUTES + 1,
        ALTERNATIVE_STEP_MINUTES,
    ):
        if offset == 0:
            continue
        start_minutes = query.start_minutes + offset
        if not window.contains(start_minutes, query.duration_minutes):
            continue
        slot_start, slot_end = query.bounds(start_minutes=start_minutes)
        free = _free_courts(courts, bookings_by_court, slot_start, slot_end)
        if free:
            candidates.append((abs(offset), start_minutes, len(free)))

    # sorted() is stable, so equal distances keep their scan order.
    candidates = sorted(candidates, key=lambda candidate: candidate[0])
    return [
        {
            "startTime": format_minutes(start_minutes),
            "endTime": format_minutes(start_minutes + query.duration_minutes),
            "availableCourtCount": count,
        }
        for _, start_minutes, count in candidates[:MAX_ALTERNATIVE_SLOTS]
    ]


def find_available_courts(club: Club, query: SlotQuery) -> AvailabilityResult:
    """
    Return the courts of ``club`` that are free for the requested slot.

    A court is free when no non-cancelled booking overlaps the half-open slot
    interval. When nothing is free, shorter standard durations are suggested
    first and alternative start times only when no shorter duration helps.
    """
    window = resolve_business_window(club, query.day)
    if window is None or not window.contains(query.start_minutes, query.duration_minutes):
        return AvailabilityResult()

    courts_qs = Court.objects.filter(club=club, is_published=True, is_active=True)
    if query.court_type:
        courts_qs = courts_qs.filter(type=query.court_type)
    courts = list(courts_qs.order_by("name"))
    if not courts:
        return AvailabilityResult()

    day_start = datetime.combine(query.day, time.min, tzinfo=timezone.utc)
    bookings = Booking.objects.filter(
        court__in=courts,
        start__gte=day_start,
        start__lt=day_start + timedelta(days=1),
    ).exclude(booking_status=Booking.STATUS_CANCELLED)

    bookings_by_court: Dict[int, List[Booking]] = {}
    for booking in bookings.only("id", "court_id", "start", "end"):
        bookings_by_court.setdefault(booking.court_id, []).append(booking)

    slot_start, slot_end = query.bounds()
    free = _free_courts(courts, bookings_by_court, slot_start, slot_end)
    if free:
        return AvailabilityResult(
            available_courts=[
                _serialize_court(
                    court,
                    quote_slot_price(
                        court, query.day, query.start_minutes, query.duration_minutes
                    ),
                )
                for court in free
            ]
        )

    result = AvailabilityResult(
        alternative_durations=_shorter_durations(query, window, courts, bookings_by_court)
    )
    if not result.alternative_durations:
        result.alternative_time_slots = _alternative_time_slots(
            query, window, courts, bookings_by_court
        )
    return result
