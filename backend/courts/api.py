from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from orgs.models import Club

from .services.availability import InvalidSlotQuery, find_available_courts, parse_slot_query


class AvailableCourtsView(APIView):
    """List the courts of a club that are free for a date, start time and duration."""

    permission_classes = [AllowAny]

    def get(self, request, club_id, *args, **kwargs):
        try:
            query = parse_slot_query(request.query_params)
        except InvalidSlotQuery as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        club = get_object_or_404(Club, pk=club_id)
        result = find_available_courts(club, query)
        return Response(result.as_payload())
