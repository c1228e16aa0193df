from django.contrib import admin

from payments.models import PaymentIntent

from .models import Booking


class PaymentIntentInline(admin.TabularInline):
    model = PaymentIntent
    extra = 0
    can_delete = False
    fields = ("order_reference", "amount_cents", "currency", "status", "signature_valid", "completed_at")
    readonly_fields = fields


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("court", "user", "start", "end", "price_cents", "booking_status", "payment_status")
    list_filter = ("booking_status", "payment_status", "court__club")
    search_fields = ("court__name", "court__club__name", "user__email", "guest_email")
    date_hierarchy = "start"
    inlines = [PaymentIntentInline]

    def get_readonly_fields(self, request, obj=None):
        if obj is not None and obj.payment_status == Booking.PAID:
            return ("start", "end", "court")
        return ()
