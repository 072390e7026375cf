"""Django app configuration for the sponsorship management API."""

from django.apps import AppConfig


class DjangoSponsorshipManageConfig(AppConfig):
    """Configuration for the organizer-facing sponsorship endpoints."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "django_sponsorship.manage"
    label = "sponsorship_manage"
    verbose_name = "Sponsorship Management"
