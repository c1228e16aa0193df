from rest_framework import serializers

from payments.models import PaymentProvider


class PaymentIntentCreateSerializer(serializers.Serializer):
    clubId = serializers.IntegerField()
    courtId = serializers.IntegerField()
    startAt = serializers.CharField()
    endAt = serializers.CharField()
    provider = serializers.CharField(default=PaymentProvider.WAYFORPAY)


class BookingPaySerializer(serializers.Serializer):
    provider = serializers.CharField(default=PaymentProvider.WAYFORPAY)
