"""Sponsor, sponsorship level, expression of interest, and link models."""

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import RegexValidator
from django.db import models
from django.utils import timezone
from django.utils.text import slugify


class Sponsor(models.Model):
    """A sponsoring organization.

    Profiles are created and edited outside the sponsorship engine; the
    engine only references them from expressions of interest and links.
    """

    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, blank=True, unique=True)
    website_url = models.URLField(blank=True, default="")
    description = models.TextField(blank=True, default="")
    contact_name = models.CharField(max_length=200, blank=True, default="")
    contact_email = models.EmailField(blank=True, default="")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name

    def save(self, *args: object, **kwargs: object) -> None:
        """Auto-generate slug from name if not set."""
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)


class SponsorshipLevel(models.Model):
    """A named capacity tier scoped to one event.

    ``slots_total`` of ``None`` means the tier is unlimited.  ``slots_filled``
    is only ever changed through ``LevelRegistry.increment`` and
    ``LevelRegistry.decrement``, which keep it between zero and
    ``slots_total``; a database constraint backs up the upper bound.
    """

    event = models.ForeignKey(
        "sponsorship_events.Event",
        on_delete=models.CASCADE,
        related_name="sponsorship_levels",
    )
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, blank=True)
    colour = models.CharField(
        max_length=7,
        default="#CD7F32",
        validators=[RegexValidator(r"^#[0-9A-Fa-f]{6}$", "Enter a hex colour such as #CD7F32.")],
        help_text="Hex colour used when displaying the tier.",
    )
    value = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    slots_total = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Number of sponsors this tier can hold. Leave blank for unlimited.",
    )
    slots_filled = models.PositiveIntegerField(default=0, editable=False)
    recognition_text = models.TextField(blank=True, default="")
    order = models.PositiveIntegerField(default=0)
    enabled = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["order", "pk"]
        unique_together = [("event", "slug")]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(slots_total__isnull=True) | models.Q(slots_filled__lte=models.F("slots_total")),
                name="sponsorship_level_slots_within_total",
            ),
        ]
        permissions = [
            ("manage_sponsorship", "Can manage event sponsorship"),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.event.slug})"

    def save(self, *args: object, **kwargs: object) -> None:
        """Auto-generate a slug that is unique within the event."""
        if not self.slug:
            self.slug = self._unique_slug(slugify(self.name))
        super().save(*args, **kwargs)

    def _unique_slug(self, base: str) -> str:
        """Return *base*, or *base* with a numeric suffix if already taken."""
        siblings = SponsorshipLevel.objects.filter(event_id=self.event_id).exclude(pk=self.pk)
        slug = base
        suffix = 2
        while siblings.filter(slug=slug).exists():
            slug = f"{base}-{suffix}"
            suffix += 1
        return slug

    def clean(self) -> None:
        """Validate that the tier total does not drop below the filled count."""
        if self.slots_total is not None and self.slots_filled > self.slots_total:
            msg = f"Total slots cannot be lower than the {self.slots_filled} slots already filled."
            raise ValidationError({"slots_total": msg})

    @property
    def is_unlimited(self) -> bool:
        """Return True when the tier has no slot cap."""
        return self.slots_total is None

    @property
    def available_slots(self) -> int | None:
        """Return the remaining slots, or ``None`` for an unlimited tier."""
        if self.slots_total is None:
            return None
        return max(self.slots_total - self.slots_filled, 0)


class ExpressionOfInterest(models.Model):
    """A sponsor's application to sponsor one event.

    The disclosure answers collected by the submission form are stored as
    a single opaque document; nothing in the engine reads them.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"
        INFO_REQUESTED = "info_requested", "Info requested"

    sponsor = models.ForeignKey(
        Sponsor,
        on_delete=models.CASCADE,
        related_name="expressions_of_interest",
    )
    event = models.ForeignKey(
        "sponsorship_events.Event",
        on_delete=models.CASCADE,
        related_name="expressions_of_interest",
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)
    preferred_level = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Level requested by the sponsor, as typed on the form.",
    )
    level = models.ForeignKey(
        SponsorshipLevel,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="expressions_of_interest",
        help_text="Level assigned when the expression of interest was approved.",
    )
    disclosures = models.JSONField(default=dict, blank=True)
    submitted_at = models.DateTimeField(default=timezone.now)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_expressions_of_interest",
    )
    review_notes = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-submitted_at"]
        verbose_name = "expression of interest"
        verbose_name_plural = "expressions of interest"
        constraints = [
            models.UniqueConstraint(fields=["sponsor", "event"], name="unique_eoi_per_sponsor_event"),
        ]

    def __str__(self) -> str:
        return f"EOI #{self.pk}: {self.sponsor} for {self.event} ({self.status})"


class SponsorEventLink(models.Model):
    """The relationship between one sponsor and one event.

    A single row per pair serves both "sponsors of this event" and "events
    of this sponsor", so the two views of the relationship always agree.
    A linked sponsor cannot be deleted; unlink it first so its level slot
    is released.
    """

    sponsor = models.ForeignKey(
        Sponsor,
        on_delete=models.PROTECT,
        related_name="event_links",
    )
    event = models.ForeignKey(
        "sponsorship_events.Event",
        on_delete=models.CASCADE,
        related_name="sponsor_links",
    )
    level = models.ForeignKey(
        SponsorshipLevel,
        on_delete=models.RESTRICT,
        null=True,
        blank=True,
        related_name="links",
    )
    linked_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["linked_at", "pk"]
        constraints = [
            models.UniqueConstraint(fields=["sponsor", "event"], name="unique_link_per_sponsor_event"),
        ]

    def __str__(self) -> str:
        level = f" ({self.level.name})" if self.level_id else ""
        return f"{self.sponsor} -> {self.event}{level}"
