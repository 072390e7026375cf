"""Django app configuration for the sponsors app."""

from django.apps import AppConfig


class DjangoSponsorshipSponsorsConfig(AppConfig):
    """Configuration for the sponsors app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "django_sponsorship.sponsors"
    label = "sponsorship_sponsors"
    verbose_name = "Sponsors"
