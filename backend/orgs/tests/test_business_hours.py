from datetime import date, time

import pytest
from django.core.exceptions import ValidationError

from orgs.models import Club, ClubBusinessHours, ClubSpecialHours, Organization
from orgs.services.business_hours import BusinessWindow, resolve_business_window

MONDAY = date(2030, 6, 3)
TUESDAY = date(2030, 6, 4)


@pytest.fixture
def club(db):
    organization = Organization.objects.create(name="Kyiv Padel", slug="kyiv-padel")
    return Club.objects.create(organization=organization, name="Central", slug="central")


def test_club_without_schedule_uses_default_hours(settings, club):
    settings.BOOKING_DEFAULT_OPEN_HOUR = 9
    settings.BOOKING_DEFAULT_CLOSE_HOUR = 22

    window = resolve_business_window(club, MONDAY)

    assert window == BusinessWindow(open_minutes=9 * 60, close_minutes=22 * 60)


def test_weekly_schedule_applies_to_matching_weekday(club):
    ClubBusinessHours.objects.create(
        club=club,
        day_of_week=ClubBusinessHours.MONDAY,
        open_time=time(8, 0),
        close_time=time(20, 30),
    )

    assert resolve_business_window(club.id, MONDAY) == BusinessWindow(480, 1230)
    assert resolve_business_window(club.id, TUESDAY) == BusinessWindow(540, 1320)


def test_closed_weekday_has_no_window(club):
    ClubBusinessHours.objects.create(
        club=club, day_of_week=ClubBusinessHours.MONDAY, is_closed=True
    )

    assert resolve_business_window(club, MONDAY) is None


def test_special_hours_override_weekly_schedule(club):
    ClubBusinessHours.objects.create(
        club=club,
        day_of_week=ClubBusinessHours.MONDAY,
        open_time=time(8, 0),
        close_time=time(22, 0),
    )
    ClubSpecialHours.objects.create(
        club=club,
        date=MONDAY,
        open_time=time(12, 0),
        close_time=time(16, 0),
        reason="Tournament",
    )

    assert resolve_business_window(club, MONDAY) == BusinessWindow(720, 960)


def test_special_closure_closes_the_day(club):
    ClubSpecialHours.objects.create(club=club, date=MONDAY, is_closed=True)

    assert resolve_business_window(club, MONDAY) is None


def test_window_bounds_are_inclusive_of_close_time():
    window = BusinessWindow(open_minutes=480, close_minutes=1320)

    assert window.contains(480, 60)
    assert window.contains(1260, 60)
    assert not window.contains(450, 60)
    assert not window.contains(1290, 60)


def test_business_hours_require_close_after_open(club):
    hours = ClubBusinessHours(
        club=club,
        day_of_week=ClubBusinessHours.FRIDAY,
        open_time=time(18, 0),
        close_time=time(9, 0),
    )

    with pytest.raises(ValidationError):
        hours.full_clean()
