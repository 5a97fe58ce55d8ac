"""Admin configuration for the packages app."""
from django.contrib import admin

from .models import Package, Payment, TrainingSession


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    fields = ("amount", "method", "payment_date", "sales_attributed_to", "created_by")
    readonly_fields = fields
    can_delete = False
    show_change_link = True

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Package)
class PackageAdmin(admin.ModelAdmin):
    list_display = ("name", "client", "trainer", "organization", "total_value", "total_sessions", "active")
    list_filter = ("active", "organization")
    search_fields = ("name", "client__email", "client__last_name")
    list_select_related = ("client", "trainer", "organization")
    readonly_fields = ("id", "created_at", "updated_at")
    inlines = [PaymentInline]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("package", "amount", "method", "payment_date", "created_by")
    list_filter = ("method", "payment_date")
    search_fields = ("package__name", "package__client__email")
    list_select_related = ("package", "created_by")
    readonly_fields = ("id", "created_at", "updated_at")
    date_hierarchy = "payment_date"

    # Payments change only through packages.services so the ledger checks always run.
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(TrainingSession)
class TrainingSessionAdmin(admin.ModelAdmin):
    list_display = ("package", "trainer", "session_date", "validated", "cancelled")
    list_filter = ("validated", "cancelled")
    list_select_related = ("package", "trainer")
    readonly_fields = ("id", "created_at", "updated_at")
