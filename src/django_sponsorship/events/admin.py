"""Django admin configuration for the events app."""

from django.contrib import admin

from django_sponsorship.events.models import Event


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    """Admin interface for managing events and their sponsorship flags."""

    list_display = ("name", "slug", "start_date", "end_date", "sponsorship_enabled", "sponsorship_levels_enabled")
    list_filter = ("sponsorship_enabled", "sponsorship_levels_enabled", "is_active")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}
    readonly_fields = ("created_at", "updated_at")
