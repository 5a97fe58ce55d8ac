from django.contrib import admin

from .models import Organization


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "currency", "commission_method", "is_active")
    list_filter = ("is_active", "commission_method")
    search_fields = ("name", "slug")
    readonly_fields = ("id", "created_at", "updated_at")
