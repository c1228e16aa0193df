from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"

    def ready(self):
        from .gateways import register_gateway
        from .models import PaymentProvider
        from .wayforpay import WayForPayConfig, WayForPayGateway

        register_gateway(
            PaymentProvider.WAYFORPAY,
            WayForPayGateway(WayForPayConfig.from_settings()),
        )
