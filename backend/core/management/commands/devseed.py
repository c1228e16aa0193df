from datetime import time, timedelta

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from accounts.models import User
from bookings.models import Booking
from core.encryption import encrypt_string
from courts.models import Court, CourtPriceRule
from orgs.models import Club, ClubBusinessHours, Organization
from payments.models import PaymentAccount, PaymentProvider

SEED_PASSWORD = "Courtside123!"
SUPERUSER_EMAIL = "admin@courtside.test"
SUPERUSER_PASSWORD = "AdminCourtside123!"

# Public WayForPay sandbox merchant.
SANDBOX_MERCHANT_ID = "test_merch_n1"
SANDBOX_SECRET_KEY = "flk3409refn54t54t*FNJRET"


class Command(BaseCommand):
    help = "Populate the local development database with clubs, courts and bookings."

    def handle(self, *args, **options):
        if not settings.DEBUG:
            raise CommandError("Refusing to seed data while DEBUG is False.")

        with transaction.atomic():
            self.stdout.write(self.style.MIGRATE_HEADING("Ensuring admin superuser"))
            self._ensure_superuser()

            self.stdout.write(self.style.MIGRATE_HEADING("Creating organizations & clubs"))
            organization, _ = Organization.objects.update_or_create(
                slug="kyiv-padel",
                defaults={"name": "Kyiv Padel Group", "contact_email": "hello@kyivpadel.test"},
            )
            central = self._ensure_club(organization, "kyiv-central", "Kyiv Central", "Kyiv")
            riverside = self._ensure_club(organization, "riverside", "Riverside Courts", "Kyiv")

            for club in (central, riverside):
                for day in range(7):
                    weekend = day >= ClubBusinessHours.SATURDAY
                    ClubBusinessHours.objects.update_or_create(
                        club=club,
                        day_of_week=day,
                        defaults={
                            "open_time": time(8 if weekend else 9, 0),
                            "close_time": time(22, 0),
                            "is_closed": False,
                        },
                    )

            self.stdout.write(self.style.MIGRATE_HEADING("Creating courts & price rules"))
            courts = [
                self._ensure_court(central, "padel-1", "Padel 1", Court.PADEL, indoor=True, price=60000),
                self._ensure_court(central, "padel-2", "Padel 2", Court.PADEL, indoor=True, price=60000),
                self._ensure_court(central, "tennis-1", "Tennis 1", Court.TENNIS, indoor=False, price=45000),
                self._ensure_court(riverside, "padel-river", "River Padel", Court.PADEL, indoor=False, price=50000),
            ]
            for court in courts:
                CourtPriceRule.objects.filter(court=court).delete()
                CourtPriceRule.objects.create(
                    court=court,
                    start_time=time(18, 0),
                    end_time=time(22, 0),
                    price_cents=court.default_price_cents + 20000,
                )
                CourtPriceRule.objects.create(
                    court=court,
                    day_of_week=ClubBusinessHours.SUNDAY,
                    start_time=time(8, 0),
                    end_time=time(12, 0),
                    price_cents=court.default_price_cents - 10000,
                )

            self.stdout.write(self.style.MIGRATE_HEADING("Creating payment accounts"))
            PaymentAccount.objects.update_or_create(
                scope=PaymentAccount.SCOPE_ORGANIZATION,
                organization=organization,
                provider=PaymentProvider.WAYFORPAY,
                defaults={
                    "merchant_id": encrypt_string(SANDBOX_MERCHANT_ID),
                    "secret_key": encrypt_string(SANDBOX_SECRET_KEY),
                    "display_name": "Kyiv Padel sandbox",
                    "status": PaymentAccount.STATUS_ACTIVE,
                    "is_active": True,
                    "last_verified_at": timezone.now(),
                },
            )

            self.stdout.write(self.style.MIGRATE_HEADING("Creating players & bookings"))
            player = self._ensure_user("player@courtside.test", "Pat", "Player")
            Booking.objects.filter(user=player).delete()
            tomorrow = (timezone.now() + timedelta(days=1)).replace(
                hour=10, minute=0, second=0, microsecond=0
            )
            Booking.objects.create(
                court=courts[0],
                user=player,
                start=tomorrow,
                end=tomorrow + timedelta(hours=1),
                price_cents=courts[0].default_price_cents,
                sport_type=courts[0].sport_type,
                payment_status=Booking.PAID,
            )
            Booking.objects.create(
                court=courts[1],
                user=player,
                start=tomorrow + timedelta(hours=2),
                end=tomorrow + timedelta(hours=3, minutes=30),
                price_cents=90000,
                sport_type=courts[1].sport_type,
            )

        self.stdout.write(self.style.SUCCESS("Development seed data created."))
        self.stdout.write(self.style.NOTICE(f"Sample login accounts use password: {SEED_PASSWORD}"))
        self.stdout.write(self.style.NOTICE(f"Admin superuser {SUPERUSER_EMAIL} password: {SUPERUSER_PASSWORD}"))

    def _ensure_club(self, organization: Organization, slug: str, name: str, city: str) -> Club:
        club, _ = Club.objects.update_or_create(
            slug=slug,
            defaults={"organization": organization, "name": name, "city": city},
        )
        return club

    def _ensure_court(
        self,
        club: Club,
        slug: str,
        name: str,
        court_type: str,
        *,
        indoor: bool,
        price: int,
    ) -> Court:
        court, _ = Court.objects.update_or_create(
            club=club,
            slug=slug,
            defaults={
                "name": name,
                "type": court_type,
                "sport_type": court_type,
                "indoor": indoor,
                "surface": "artificial grass" if court_type == Court.PADEL else "hard",
                "default_price_cents": price,
            },
        )
        return court

    def _ensure_user(self, email: str, first_name: str, last_name: str) -> User:
        user, created = User.objects.get_or_create(
            email=email,
            defaults={
                "username": email,
                "first_name": first_name,
                "last_name": last_name,
                "display_name": f"{first_name} {last_name}",
            },
        )
        if created:
            user.set_password(SEED_PASSWORD)
            user.save()
        return user

    def _ensure_superuser(self) -> User:
        user, created = User.objects.get_or_create(
            email=SUPERUSER_EMAIL,
            defaults={
                "username": SUPERUSER_EMAIL,
                "first_name": "Admin",
                "last_name": "User",
                "display_name": "Admin User",
                "is_staff": True,
                "is_superuser": True,
            },
        )
        if created or not user.has_usable_password():
            user.set_password(SUPERUSER_PASSWORD)
            user.save(update_fields=["password"])
        return user
