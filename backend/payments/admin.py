from django import forms
from django.contrib import admin, messages

from core.encryption import decrypt_string, encrypt_string

from .gateways import GatewayError
from .models import PaymentAccount, PaymentIntent
from .services.accounts import (
    mask_credential,
    schedule_verification,
    update_payment_account_credentials,
    verify_payment_account,
)


class PaymentAccountForm(forms.ModelForm):
    new_merchant_id = forms.CharField(required=False, label="Merchant account")
    new_secret_key = forms.CharField(
        required=False,
        label="Secret key",
        widget=forms.PasswordInput(render_value=False),
        help_text="Leave blank to keep the stored key.",
    )

    class Meta:
        model = PaymentAccount
        fields = ("provider", "scope", "club", "organization", "display_name", "is_active")

    def clean(self):
        cleaned = super().clean()
        if self.instance.pk is None and not (
            cleaned.get("new_merchant_id") and cleaned.get("new_secret_key")
        ):
            raise forms.ValidationError("Merchant account and secret key are required.")
        return cleaned


@admin.register(PaymentAccount)
class PaymentAccountAdmin(admin.ModelAdmin):
    form = PaymentAccountForm
    list_display = (
        "__str__",
        "scope",
        "provider",
        "masked_merchant_id",
        "status",
        "is_active",
        "last_verified_at",
        "updated_at",
    )
    list_filter = ("provider", "scope", "status", "is_active")
    search_fields = ("display_name", "club__name", "organization__name")
    readonly_fields = (
        "status",
        "last_verified_at",
        "verification_error",
        "created_by",
        "created_at",
        "updated_at",
    )
    actions = ["verify_accounts"]

    @admin.display(description="Merchant")
    def masked_merchant_id(self, obj):
        return mask_credential(decrypt_string(obj.merchant_id))

    def save_model(self, request, obj, form, change):
        merchant_id = form.cleaned_data.get("new_merchant_id")
        secret_key = form.cleaned_data.get("new_secret_key")
        if change:
            super().save_model(request, obj, form, change)
            if merchant_id or secret_key:
                update_payment_account_credentials(
                    obj,
                    merchant_id=merchant_id or None,
                    secret_key=secret_key or None,
                )
            return

        obj.created_by = request.user
        obj.merchant_id = encrypt_string(merchant_id)
        obj.secret_key = encrypt_string(secret_key)
        obj.status = PaymentAccount.STATUS_PENDING
        super().save_model(request, obj, form, change)
        schedule_verification(obj)

    @admin.action(description="Verify selected accounts")
    def verify_accounts(self, request, queryset):
        for account in queryset:
            try:
                verified = verify_payment_account(account.id)
            except GatewayError as exc:
                self.message_user(
                    request,
                    f"{account}: gateway unavailable ({exc})",
                    level=messages.WARNING,
                )
                continue
            self.message_user(request, f"{verified}: {verified.get_status_display()}")


@admin.register(PaymentIntent)
class PaymentIntentAdmin(admin.ModelAdmin):
    list_display = (
        "order_reference",
        "booking",
        "amount_cents",
        "currency",
        "status",
        "signature_valid",
        "completed_at",
    )
    list_filter = ("status", "provider", "signature_valid")
    search_fields = ("order_reference", "transaction_id")
    readonly_fields = [field.name for field in PaymentIntent._meta.fields]
