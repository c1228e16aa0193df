from django.contrib import admin

from .models import Club, ClubBusinessHours, ClubSpecialHours, Organization


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "contact_email")
    search_fields = ("name", "slug", "contact_email")


class ClubBusinessHoursInline(admin.TabularInline):
    model = ClubBusinessHours
    extra = 0


class ClubSpecialHoursInline(admin.TabularInline):
    model = ClubSpecialHours
    extra = 0


@admin.register(Club)
class ClubAdmin(admin.ModelAdmin):
    list_display = ("name", "organization", "city", "is_published", "updated_at")
    list_filter = ("is_published", "organization")
    search_fields = ("name", "slug", "organization__name")
    inlines = [ClubBusinessHoursInline, ClubSpecialHoursInline]
