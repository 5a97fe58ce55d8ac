from django.contrib import admin

from .models import CommissionCalculation, CommissionProfile, CommissionTier, LegacyCommissionTier


class CommissionTierInline(admin.TabularInline):
    model = CommissionTier
    extra = 0
    fields = ("tier_level", "session_threshold", "session_commission_percent", "session_flat_fee")


@admin.register(CommissionProfile)
class CommissionProfileAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "organization",
        "calculation_method",
        "application_mode",
        "trigger_type",
        "is_default",
        "is_active",
    )
    list_filter = ("calculation_method", "application_mode", "is_default", "is_active")
    search_fields = ("name", "organization__name")
    readonly_fields = ("id", "created_at", "updated_at")
    inlines = [CommissionTierInline]


@admin.register(LegacyCommissionTier)
class LegacyCommissionTierAdmin(admin.ModelAdmin):
    list_display = ("organization", "min_sessions", "max_sessions", "percentage")
    list_filter = ("organization",)


@admin.register(CommissionCalculation)
class CommissionCalculationAdmin(admin.ModelAdmin):
    list_display = (
        "trainer",
        "period_start",
        "period_end",
        "session_count",
        "method",
        "tier_reached",
        "commission_amount",
    )
    list_filter = ("method", "period_start")
    search_fields = ("trainer__email", "trainer__last_name")
    readonly_fields = ("id", "created_at", "updated_at", "calculation_snapshot")
    list_select_related = ("trainer",)
