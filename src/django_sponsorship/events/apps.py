"""Django app configuration for the events app."""

from django.apps import AppConfig


class DjangoSponsorshipEventsConfig(AppConfig):
    """Configuration for the events app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "django_sponsorship.events"
    label = "sponsorship_events"
    verbose_name = "Events"
