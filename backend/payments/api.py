import json
import logging

from django.http import QueryDict
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from orgs.models import Club

from .services.accounts import get_payment_account_status
from .services.callbacks import handle_booking_payment_callback

logger = logging.getLogger(__name__)


def _callback_payload(raw_body: bytes):
    """
    Decode a gateway callback body.

    WayForPay posts the JSON document either as the request body or as the
    single key of a form-encoded body.
    """
    text = raw_body.decode("utf-8", errors="replace").strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        pass

    form = QueryDict(text)
    if len(form) == 1:
        key = next(iter(form.keys()))
        try:
            return json.loads(key)
        except ValueError:
            return form.dict()
    return form.dict() or None


class ClubPaymentStatusView(APIView):
    """Tell clients whether online payment is available for a club."""

    permission_classes = [AllowAny]

    def get(self, request, club_id, *args, **kwargs):
        club = get_object_or_404(Club, pk=club_id)
        return Response(get_payment_account_status(club.id))


class WayForPayPaymentWebhookView(APIView):
    """Receive WayForPay payment results for bookings."""

    permission_classes: list = []
    authentication_classes: list = []

    def post(self, request, *args, **kwargs):
        payload = _callback_payload(request.body)
        result = handle_booking_payment_callback(payload)
        if not result.success:
            logger.info("WayForPay callback not applied: %s", result.message)
        # The gateway retries anything but 200, so outcomes are reported in the body.
        return Response(result.as_payload(), status=status.HTTP_200_OK)
