from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User


@admin.register(User)
class PlayerAdmin(UserAdmin):
    list_display = ("email", "display_name", "phone", "is_staff")
    search_fields = ("email", "display_name", "phone")
    fieldsets = UserAdmin.fieldsets + (
        ("Booking profile", {"fields": ("display_name", "phone")}),
    )
