"""Sponsorship level registry and slot accounting.

Owns CRUD over ``SponsorshipLevel`` records and the ``slots_filled``
counter.  The counter is only moved by conditional ``UPDATE`` statements so
the capacity check and the write happen in one atomic database operation,
regardless of how many requests race for the last slot.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.db.models import F, Q
from django.utils import timezone
from django.utils.text import slugify

from django_sponsorship.events.models import Event
from django_sponsorship.features import is_feature_enabled
from django_sponsorship.settings import get_config
from django_sponsorship.sponsors.exceptions import Conflict, NotFound, ValidationFailed
from django_sponsorship.sponsors.models import SponsorshipLevel

logger = logging.getLogger(__name__)

EDITABLE_FIELDS: frozenset[str] = frozenset(
    {"name", "colour", "value", "slots_total", "recognition_text", "order", "enabled"},
)


@dataclass(frozen=True, slots=True)
class SlotChange:
    """Outcome of an increment or decrement on a level's ``slots_filled``.

    Attributes:
        level: The level as stored after the operation.
        applied: ``True`` when the counter moved, ``False`` when the request
            was refused (full level) or had nothing to do (already at zero).
    """

    level: SponsorshipLevel
    applied: bool


def resolve_event(event: Event | int) -> Event:
    """Return the ``Event`` for an instance or primary key.

    Raises:
        NotFound: If no event has the given primary key.
    """
    if isinstance(event, Event):
        return event
    try:
        return Event.objects.get(pk=event)
    except (Event.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Event {event} not found.", event_id=event) from None


def _validation_message(exc: ValidationError) -> str:
    """Flatten a Django ``ValidationError`` into one readable line."""
    if hasattr(exc, "message_dict"):
        return "; ".join(f"{key}: {' '.join(msgs)}" for key, msgs in exc.message_dict.items())
    return " ".join(exc.messages)


class LevelRegistry:
    """Stateless service for sponsorship level CRUD and slot allocation."""

    @staticmethod
    def list_for_event(event: Event | int) -> models.QuerySet[SponsorshipLevel]:
        """Return the event's levels in display order."""
        event = resolve_event(event)
        return SponsorshipLevel.objects.filter(event=event).order_by("order", "pk")

    @staticmethod
    def get(level_id: int) -> SponsorshipLevel:
        """Return a level by primary key.

        Raises:
            NotFound: If the level does not exist.
        """
        try:
            return SponsorshipLevel.objects.select_related("event").get(pk=level_id)
        except (SponsorshipLevel.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Sponsorship level {level_id} not found.", level_id=level_id) from None

    @staticmethod
    @transaction.atomic
    def add(event: Event | int, fields: Mapping[str, object]) -> SponsorshipLevel:
        """Create a new level for an event.

        Only keys in ``EDITABLE_FIELDS`` are used; ``slots_filled`` always
        starts at zero.  The slug is derived from the name and made unique
        within the event.

        Args:
            event: The event (or its primary key) that owns the level.
            fields: Level attributes, typically from a submitted form.

        Returns:
            The saved level.

        Raises:
            NotFound: If the event does not exist.
            ValidationFailed: If the event does not use sponsorship levels,
                the name is missing, or a field value is invalid.
        """
        event = resolve_event(event)
        if not is_feature_enabled("sponsorship_levels", event):
            raise ValidationFailed("Sponsorship levels are not enabled for this event.", event_id=event.pk)

        data = {key: value for key, value in fields.items() if key in EDITABLE_FIELDS}
        if not str(data.get("name") or "").strip():
            raise ValidationFailed("Level name is required.", event_id=event.pk)

        level = SponsorshipLevel(event=event, **data)
        level.slug = level._unique_slug(level.slug or slugify(level.name))
        try:
            level.full_clean()
        except ValidationError as exc:
            raise ValidationFailed(_validation_message(exc), event_id=event.pk) from None
        level.save()

        logger.info('Sponsorship level "%s" (ID: %d) added to event %d', level.name, level.pk, event.pk)
        return level

    @staticmethod
    @transaction.atomic
    def update(level_id: int, fields: Mapping[str, object]) -> SponsorshipLevel:
        """Update the editable attributes of a level.

        The row is locked for the duration of the update so a concurrent
        increment cannot slip between the ``slots_total`` check and the save.

        Raises:
            NotFound: If the level does not exist.
            ValidationFailed: If no editable field was supplied, or the new
                values are invalid (including a ``slots_total`` below the
                current ``slots_filled``).
        """
        try:
            level = SponsorshipLevel.objects.select_for_update().get(pk=level_id)
        except (SponsorshipLevel.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Sponsorship level {level_id} not found.", level_id=level_id) from None

        data = {key: value for key, value in fields.items() if key in EDITABLE_FIELDS}
        if not data:
            raise ValidationFailed("No level fields to update.", level_id=level_id)
        if "name" in data and not str(data["name"] or "").strip():
            raise ValidationFailed("Level name is required.", level_id=level_id)

        for key, value in data.items():
            setattr(level, key, value)
        try:
            level.full_clean()
        except ValidationError as exc:
            raise ValidationFailed(_validation_message(exc), level_id=level_id) from None
        level.save(update_fields=[*data.keys(), "updated_at"])

        logger.info("Sponsorship level %d updated", level.pk)
        return level

    @staticmethod
    @transaction.atomic
    def delete(level_id: int) -> None:
        """Delete a level that holds no sponsors.

        Raises:
            NotFound: If the level does not exist.
            Conflict: If the level has filled slots or links still reference it.
        """
        try:
            level = SponsorshipLevel.objects.select_for_update().get(pk=level_id)
        except (SponsorshipLevel.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Sponsorship level {level_id} not found.", level_id=level_id) from None

        if level.slots_filled > 0 or level.links.exists():
            raise Conflict(
                "Cannot delete a level that has linked sponsors. Unlink all sponsors first.",
                level_id=level.pk,
            )

        event_id = level.event_id
        level.delete()
        logger.info("Sponsorship level %d deleted from event %d", level_id, event_id)

    @staticmethod
    def increment(level_id: int) -> SlotChange:
        """Claim one slot on a level if capacity remains.

        The capacity check and the increment are a single conditional
        ``UPDATE``; of two callers competing for the last slot exactly one
        sees its row updated.

        Returns:
            A ``SlotChange`` whose ``applied`` flag is ``False`` when the
            level was already full (the counter is left untouched).

        Raises:
            NotFound: If the level does not exist.
        """
        updated = (
            SponsorshipLevel.objects.filter(pk=level_id)
            .filter(Q(slots_total__isnull=True) | Q(slots_filled__lt=F("slots_total")))
            .update(slots_filled=F("slots_filled") + 1, updated_at=timezone.now())
        )
        level = LevelRegistry.get(level_id)
        if not updated:
            logger.warning("Cannot increment slots_filled for level %d: all slots are full", level.pk)
        return SlotChange(level=level, applied=bool(updated))

    @staticmethod
    def decrement(level_id: int) -> SlotChange:
        """Release one slot on a level, never going below zero.

        Releasing a slot on a level that is already at zero is a no-op, so
        a doubled reversal cannot corrupt the counter.

        Raises:
            NotFound: If the level does not exist.
        """
        updated = (
            SponsorshipLevel.objects.filter(pk=level_id, slots_filled__gt=0)
            .update(slots_filled=F("slots_filled") - 1, updated_at=timezone.now())
        )
        level = LevelRegistry.get(level_id)
        if not updated:
            logger.info("slots_filled for level %d already at zero, nothing to release", level.pk)
        return SlotChange(level=level, applied=bool(updated))

    @staticmethod
    def available_slots(level_id: int) -> int | None:
        """Return the number of free slots on a level.

        Returns:
            ``slots_total - slots_filled`` (never negative), or ``None`` when
            the level is unlimited.

        Raises:
            NotFound: If the level does not exist.
        """
        return LevelRegistry.get(level_id).available_slots

    @staticmethod
    @transaction.atomic
    def populate_defaults(event: Event | int) -> list[SponsorshipLevel]:
        """Create the configured default tiers for an event without levels.

        The event row is locked so two organizers clicking at once cannot
        both seed the same event.

        Returns:
            The created levels in display order.

        Raises:
            NotFound: If the event does not exist.
            Conflict: If the event already has at least one level.
            ValidationFailed: If the event does not use sponsorship levels.
        """
        event_id = event.pk if isinstance(event, Event) else event
        try:
            event = Event.objects.select_for_update().get(pk=event_id)
        except (Event.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Event {event_id} not found.", event_id=event_id) from None

        if SponsorshipLevel.objects.filter(event=event).exists():
            raise Conflict("Levels already exist for this event.", event_id=event.pk)

        created = [
            LevelRegistry.add(
                event,
                {
                    "name": default.name,
                    "colour": default.colour,
                    "value": default.value,
                    "slots_total": default.slots_total,
                    "recognition_text": default.recognition_text,
                    "order": default.order,
                },
            )
            for default in get_config().default_levels
        ]

        logger.info(
            "Default sponsorship levels populated for event %d (%d levels created)",
            event.pk,
            len(created),
        )
        return created

    @staticmethod
    def match_label(event: Event | int, label: str) -> SponsorshipLevel | None:
        """Resolve a free-form preferred-level label to one of the event's levels.

        The label is tried as a primary key, then a slug, then a
        case-insensitive name.  Disabled levels never match.

        Returns:
            The matching enabled level, or ``None``.
        """
        label = (label or "").strip()
        if not label:
            return None
        levels = SponsorshipLevel.objects.filter(event=resolve_event(event), enabled=True)
        if label.isdigit():
            match = levels.filter(pk=int(label)).first()
            if match is not None:
                return match
        return levels.filter(slug=label).first() or levels.filter(name__iexact=label).first()
