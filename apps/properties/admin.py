"""Admin registrations for properties domain."""

from __future__ import annotations

from django.contrib import admin

from .models import Property


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "owner",
        "city",
        "status",
        "is_active",
        "is_available",
        "monthly_rent",
        "currency",
        "created_at",
    )
    list_filter = ("status", "is_active", "is_available", "city", "currency")
    search_fields = ("title", "city", "address", "owner__email")
    readonly_fields = ("created_at", "updated_at")
    actions = ("approve_selected",)

    @admin.action(description="Approve selected properties")
    def approve_selected(self, request, queryset):  # type: ignore
        updated = queryset.update(status=Property.Status.APPROVED)
        self.message_user(request, f"{updated} properties approved.")
