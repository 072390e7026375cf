"""Django admin configuration for the sponsors app.

Slot counters and review state are shown read-only; they change only
through the sponsorship services so the counters stay in step with links.
"""

from django.contrib import admin
from django.db import transaction
from django.db.models import QuerySet
from django.http import HttpRequest

from django_sponsorship.sponsors.models import ExpressionOfInterest, Sponsor, SponsorEventLink, SponsorshipLevel
from django_sponsorship.sponsors.services.linkage import LinkageService


@admin.register(Sponsor)
class SponsorAdmin(admin.ModelAdmin):
    """Admin interface for managing sponsor profiles."""

    list_display = ("name", "slug", "contact_email", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "slug", "contact_name", "contact_email")
    readonly_fields = ("created_at", "updated_at")


@admin.register(SponsorshipLevel)
class SponsorshipLevelAdmin(admin.ModelAdmin):
    """Admin interface for managing sponsorship levels."""

    list_display = ("name", "event", "value", "slots_total", "slots_filled", "order", "enabled")
    list_filter = ("event", "enabled")
    search_fields = ("name", "slug")
    readonly_fields = ("slots_filled", "created_at", "updated_at")


@admin.register(ExpressionOfInterest)
class ExpressionOfInterestAdmin(admin.ModelAdmin):
    """Admin interface for browsing expressions of interest."""

    list_display = ("sponsor", "event", "status", "preferred_level", "level", "submitted_at")
    list_filter = ("status", "event")
    search_fields = ("sponsor__name", "preferred_level", "review_notes")
    raw_id_fields = ("sponsor", "reviewed_by")
    readonly_fields = ("status", "level", "submitted_at", "reviewed_at", "reviewed_by", "review_notes")


@admin.register(SponsorEventLink)
class SponsorEventLinkAdmin(admin.ModelAdmin):
    """Admin interface for browsing sponsor/event links.

    Deleting a link here goes through ``LinkageService.unlink_sponsor`` so
    the level slot it held is released.
    """

    list_display = ("sponsor", "event", "level", "linked_at")
    list_filter = ("event",)
    search_fields = ("sponsor__name", "event__name")
    readonly_fields = ("sponsor", "event", "level", "linked_at")

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Links are created through EOI approval or the management API."""
        return False

    def delete_model(self, request: HttpRequest, obj: SponsorEventLink) -> None:  # noqa: ARG002, D102
        LinkageService.unlink_sponsor(obj.sponsor_id, obj.event_id)

    @transaction.atomic
    def delete_queryset(self, request: HttpRequest, queryset: QuerySet[SponsorEventLink]) -> None:  # noqa: ARG002, D102
        for sponsor_id, event_id in list(queryset.values_list("sponsor_id", "event_id")):
            LinkageService.unlink_sponsor(sponsor_id, event_id)
