"""Event model for django-sponsorship."""

from django.db import models


class Event(models.Model):
    """A schedulable event that may accept sponsorship.

    Sponsorship levels, expressions of interest, and sponsor links all
    hang off an event.  The two flags decide whether the event takes
    part in sponsorship at all and whether it uses capacity tiers.
    """

    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True)
    start_date = models.DateField()
    end_date = models.DateField()
    venue = models.CharField(max_length=300, blank=True, default="")
    website_url = models.URLField(blank=True, default="")

    sponsorship_enabled = models.BooleanField(
        default=False,
        help_text="Accept expressions of interest and sponsor links for this event.",
    )
    sponsorship_levels_enabled = models.BooleanField(
        default=False,
        help_text="Use sponsorship tiers with slot capacity for this event.",
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-start_date"]

    def __str__(self) -> str:
        return self.name
