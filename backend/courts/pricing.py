from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, time
from typing import Iterable, List, Optional

from django.db.models import Q

from .models import Court, CourtPriceRule

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

# Date rules override weekday rules, which override general rules.
RULE_PRIORITY = ("date", "weekday", "general")


@dataclass(frozen=True)
class PriceSegment:
    start: int
    end: int
    price_cents: int


def round_cents(value: float) -> int:
    """Round half up, so 12.5 becomes 13."""
    return int(math.floor(value + 0.5))


def prorated_price_cents(hourly_price_cents: int, duration_minutes: int) -> int:
    return round_cents(hourly_price_cents / 60 * duration_minutes)


def time_to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def _rule_end_minutes(rule: CourtPriceRule) -> int:
    end = time_to_minutes(rule.end_time)
    # 23:59 is how admins express "until midnight".
    return MINUTES_PER_DAY if end == MINUTES_PER_DAY - 1 else end


def rules_for_day(court: Court | int, day: date) -> List[CourtPriceRule]:
    court_id = court.pk if isinstance(court, Court) else court
    return list(
        CourtPriceRule.objects.filter(court_id=court_id).filter(
            Q(date=day)
            | Q(date__isnull=True, day_of_week=day.weekday())
            | Q(date__isnull=True, day_of_week__isnull=True)
        )
    )


def _subtract(start: int, end: int, covered: List[PriceSegment]) -> List[tuple[int, int]]:
    remaining = [(start, end)]
    for segment in covered:
        next_remaining = []
        for piece_start, piece_end in remaining:
            if segment.end <= piece_start or segment.start >= piece_end:
                next_remaining.append((piece_start, piece_end))
                continue
            if piece_start < segment.start:
                next_remaining.append((piece_start, segment.start))
            if segment.end < piece_end:
                next_remaining.append((segment.end, piece_end))
        remaining = next_remaining
    return remaining


def build_price_timeline(rules: Iterable[CourtPriceRule]) -> List[PriceSegment]:
    """
    Flatten the rules that apply to one day into non-overlapping segments.

    Each rule only fills the parts of its window that no higher-priority rule
    already covers. Adjacent segments with the same price are merged.
    """
    by_kind = {kind: [] for kind in RULE_PRIORITY}
    for rule in rules:
        by_kind[rule.kind].append(rule)

    segments: List[PriceSegment] = []
    for kind in RULE_PRIORITY:
        for rule in sorted(by_kind[kind], key=lambda r: r.start_time):
            start = time_to_minutes(rule.start_time)
            end = _rule_end_minutes(rule)
            for piece_start, piece_end in _subtract(start, end, segments):
                segments.append(PriceSegment(piece_start, piece_end, rule.price_cents))

    segments.sort(key=lambda segment: segment.start)
    merged: List[PriceSegment] = []
    for segment in segments:
        previous = merged[-1] if merged else None
        if previous and previous.end == segment.start and previous.price_cents == segment.price_cents:
            merged[-1] = PriceSegment(previous.start, segment.end, previous.price_cents)
        else:
            merged.append(segment)
    return merged


def price_timeline_for_day(court: Court, day: date) -> List[PriceSegment]:
    return build_price_timeline(rules_for_day(court, day))


def resolve_slot_price(
    court: Court,
    day: date,
    start_minutes: int,
    duration_minutes: int,
    *,
    rules: Optional[Iterable[CourtPriceRule]] = None,
) -> int:
    """
    Price of a slot in minor units.

    Minutes covered by the day's price timeline are charged at the rule's
    hourly rate, the rest at the court's default hourly rate. The total is
    rounded once at the end.
    """
    if rules is None:
        rules = rules_for_day(court, day)
    timeline = build_price_timeline(rules)
    if not timeline:
        return prorated_price_cents(court.default_price_cents, duration_minutes)

    end_minutes = start_minutes + duration_minutes
    total = 0.0
    covered = 0
    for segment in timeline:
        overlap = min(segment.end, end_minutes) - max(segment.start, start_minutes)
        if overlap > 0:
            total += segment.price_cents / 60 * overlap
            covered += overlap
    total += court.default_price_cents / 60 * (duration_minutes - covered)
    return round_cents(total)


def find_conflicting_rule(candidate: CourtPriceRule) -> Optional[CourtPriceRule]:
    """Return an existing rule of the same kind whose window overlaps ``candidate``."""
    siblings = CourtPriceRule.objects.filter(court_id=candidate.court_id)
    if candidate.pk:
        siblings = siblings.exclude(pk=candidate.pk)
    if candidate.date is not None:
        siblings = siblings.filter(date=candidate.date)
    elif candidate.day_of_week is not None:
        siblings = siblings.filter(date__isnull=True, day_of_week=candidate.day_of_week)
    else:
        siblings = siblings.filter(date__isnull=True, day_of_week__isnull=True)

    return siblings.filter(
        start_time__lt=candidate.end_time,
        end_time__gt=candidate.start_time,
    ).first()


def quote_slot_price(court: Court, day: date, start_minutes: int, duration_minutes: int) -> int:
    """Like ``resolve_slot_price`` but never fails; falls back to the default rate."""
    try:
        return resolve_slot_price(court, day, start_minutes, duration_minutes)
    except Exception:
        logger.warning(
            "Price lookup failed for court %s on %s; using default rate.",
            court.pk,
            day,
            exc_info=True,
        )
        return prorated_price_cents(court.default_price_cents, duration_minutes)
