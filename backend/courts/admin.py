from django.contrib import admin

from .models import Court, CourtPriceRule


class CourtPriceRuleInline(admin.TabularInline):
    model = CourtPriceRule
    extra = 0


@admin.register(Court)
class CourtAdmin(admin.ModelAdmin):
    list_display = ("name", "club", "type", "default_price_cents", "is_published", "is_active")
    list_filter = ("type", "is_published", "is_active", "club")
    search_fields = ("name", "slug", "club__name")
    inlines = [CourtPriceRuleInline]
