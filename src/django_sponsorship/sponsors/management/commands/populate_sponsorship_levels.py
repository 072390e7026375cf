"""Management command to seed an event with the default sponsorship levels.

Usage::

    manage.py populate_sponsorship_levels --event pycon-au-2026
"""

import argparse

from django.core.management.base import BaseCommand, CommandError

from django_sponsorship.events.models import Event
from django_sponsorship.sponsors.exceptions import SponsorshipError
from django_sponsorship.sponsors.services.levels import LevelRegistry


class Command(BaseCommand):
    """Create the configured default sponsorship levels for an event."""

    help = "Create the default sponsorship levels for an event that has none"

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        """Register command-line arguments.

        Args:
            parser: The argument parser to add arguments to.
        """
        parser.add_argument(
            "--event",
            required=True,
            help="Slug of the event to populate.",
        )

    def handle(self, **options: object) -> None:
        """Execute the populate command."""
        event_slug = str(options["event"])

        try:
            event = Event.objects.get(slug=event_slug)
        except Event.DoesNotExist:
            msg = f"Event with slug '{event_slug}' not found"
            raise CommandError(msg) from None

        try:
            levels = LevelRegistry.populate_defaults(event)
        except SponsorshipError as exc:
            raise CommandError(exc.message) from None

        for level in levels:
            slots = "unlimited" if level.slots_total is None else level.slots_total
            self.stdout.write(f"  {level.name}: {slots} slots")
        self.stdout.write(self.style.SUCCESS(f"Created {len(levels)} sponsorship levels for {event.name}"))
