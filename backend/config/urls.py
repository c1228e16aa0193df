from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from accounts.api import LoginView, MeView, RegisterView
from bookings.api import BookingPayView, BookingStatusView, PaymentIntentCreateView
from courts.api import AvailableCourtsView
from payments.api import ClubPaymentStatusView, WayForPayPaymentWebhookView

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/auth/register/", RegisterView.as_view(), name="auth-register"),
    path("api/auth/login/", LoginView.as_view(), name="auth-login"),
    path("api/auth/refresh/", TokenRefreshView.as_view(), name="auth-refresh"),
    path("api/auth/me/", MeView.as_view(), name="auth-me"),
    path(
        "api/clubs/<int:club_id>/available-courts/",
        AvailableCourtsView.as_view(),
        name="club-available-courts",
    ),
    path(
        "api/clubs/<int:club_id>/payment-status/",
        ClubPaymentStatusView.as_view(),
        name="club-payment-status",
    ),
    path(
        "api/bookings/payment-intents/",
        PaymentIntentCreateView.as_view(),
        name="booking-payment-intents",
    ),
    path(
        "api/bookings/<int:booking_id>/pay/",
        BookingPayView.as_view(),
        name="booking-pay",
    ),
    path(
        "api/bookings/<int:booking_id>/status/",
        BookingStatusView.as_view(),
        name="booking-status",
    ),
    path(
        "api/webhooks/wayforpay/payment/",
        WayForPayPaymentWebhookView.as_view(),
        name="wayforpay-payment-webhook",
    ),
]
