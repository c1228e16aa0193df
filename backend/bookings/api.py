from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from payments.gateways import GatewayError

from .serializers import BookingPaySerializer, PaymentIntentCreateSerializer
from .services.payments import (
    BookingPaymentError,
    get_booking_status,
    initiate_booking_payment,
    pay_existing_booking,
)


class CheckoutView(APIView):
    def error_response(self, exc: Exception) -> Response:
        if isinstance(exc, BookingPaymentError):
            return Response({"detail": exc.message}, status=exc.status_code)
        return Response({"detail": str(exc)}, status=status.HTTP_502_BAD_GATEWAY)


class PaymentIntentCreateView(CheckoutView):
    """Reserve a slot for the current user and return the gateway checkout URL."""

    def post(self, request, *args, **kwargs):
        serializer = PaymentIntentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            result = initiate_booking_payment(
                user=request.user,
                club_id=data["clubId"],
                court_id=data["courtId"],
                start_at=data["startAt"],
                end_at=data["endAt"],
                provider=data["provider"],
            )
        except (BookingPaymentError, GatewayError) as exc:
            return self.error_response(exc)
        return Response(result.as_payload(), status=status.HTTP_201_CREATED)


class BookingPayView(CheckoutView):
    """Start a new payment attempt for an existing unpaid booking."""

    def post(self, request, booking_id, *args, **kwargs):
        serializer = BookingPaySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            result = pay_existing_booking(
                user=request.user,
                booking_id=booking_id,
                provider=serializer.validated_data["provider"],
            )
        except (BookingPaymentError, GatewayError) as exc:
            return self.error_response(exc)
        return Response(result.as_payload(), status=status.HTTP_201_CREATED)


class BookingStatusView(APIView):
    def get(self, request, booking_id, *args, **kwargs):
        payload = get_booking_status(user=request.user, booking_id=booking_id)
        if payload is None:
            return Response({"detail": "Booking not found."}, status=status.HTTP_404_NOT_FOUND)
        return Response(payload)
