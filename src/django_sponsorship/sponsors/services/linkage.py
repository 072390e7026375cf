"""Sponsor-to-event linkage.

``LinkageLedger`` is the bare relationship store: one ``SponsorEventLink``
row per (sponsor, event) pair, with an optional level.  It never touches
slot counters, so ``link`` and ``unlink`` are exact inverses of each other.

``LinkageService`` is the organizer-facing API for linking a sponsor
without an expression of interest.  It wraps the ledger together with the
level registry in one transaction so a link never exists without its slot.
"""

import logging

from django.db import IntegrityError, models, transaction

from django_sponsorship.events.models import Event
from django_sponsorship.features import is_feature_enabled
from django_sponsorship.sponsors.exceptions import CapacityExhausted, Conflict, NotFound, ValidationFailed
from django_sponsorship.sponsors.models import Sponsor, SponsorEventLink, SponsorshipLevel
from django_sponsorship.sponsors.services.levels import LevelRegistry, resolve_event
from django_sponsorship.sponsors.signals import send_notification, sponsor_level_changed

logger = logging.getLogger(__name__)


def resolve_sponsor(sponsor: Sponsor | int) -> Sponsor:
    """Return the ``Sponsor`` for an instance or primary key.

    Raises:
        NotFound: If no sponsor has the given primary key.
    """
    if isinstance(sponsor, Sponsor):
        return sponsor
    try:
        return Sponsor.objects.get(pk=sponsor)
    except (Sponsor.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Sponsor {sponsor} not found.", sponsor_id=sponsor) from None


def resolve_level_for_event(level: SponsorshipLevel | int, event: Event) -> SponsorshipLevel:
    """Return a level after checking it belongs to *event* and is enabled.

    Raises:
        NotFound: If the level does not exist.
        ValidationFailed: If the level belongs to another event or is disabled.
    """
    level_id = level.pk if isinstance(level, SponsorshipLevel) else level
    resolved = LevelRegistry.get(level_id)
    if resolved.event_id != event.pk:
        raise ValidationFailed(
            "Sponsorship level must belong to the same event.",
            level_id=resolved.pk,
            event_id=event.pk,
        )
    if not resolved.enabled:
        raise ValidationFailed("Sponsorship level is disabled.", level_id=resolved.pk)
    return resolved


class LinkageLedger:
    """Stateless store for sponsor/event relationships."""

    @staticmethod
    def get(sponsor: Sponsor | int, event: Event | int) -> SponsorEventLink:
        """Return the link for a pair.

        Raises:
            NotFound: If the sponsor is not linked to the event.
        """
        sponsor_id = sponsor.pk if isinstance(sponsor, Sponsor) else sponsor
        event_id = event.pk if isinstance(event, Event) else event
        link = (
            SponsorEventLink.objects.select_related("level")
            .filter(sponsor_id=sponsor_id, event_id=event_id)
            .first()
        )
        if link is None:
            raise NotFound("Sponsor is not linked to this event.", sponsor_id=sponsor_id, event_id=event_id)
        return link

    @staticmethod
    def exists(sponsor: Sponsor | int, event: Event | int) -> bool:
        """Return True when the pair is linked."""
        sponsor_id = sponsor.pk if isinstance(sponsor, Sponsor) else sponsor
        event_id = event.pk if isinstance(event, Event) else event
        return SponsorEventLink.objects.filter(sponsor_id=sponsor_id, event_id=event_id).exists()

    @staticmethod
    @transaction.atomic
    def link(
        sponsor: Sponsor | int,
        event: Event | int,
        level: SponsorshipLevel | int | None = None,
    ) -> SponsorEventLink:
        """Record that a sponsor supports an event.

        Args:
            sponsor: The sponsor (or primary key).
            event: The event (or primary key).
            level: Optional level of the event the sponsor is placed at.

        Returns:
            The created link.

        Raises:
            NotFound: If the sponsor, event, or level does not exist.
            Conflict: If the pair is already linked.
            ValidationFailed: If the level belongs to a different event.
        """
        sponsor = resolve_sponsor(sponsor)
        event = resolve_event(event)
        resolved_level = None
        if level is not None:
            resolved_level = LevelRegistry.get(level.pk if isinstance(level, SponsorshipLevel) else level)
            if resolved_level.event_id != event.pk:
                raise ValidationFailed(
                    "Sponsorship level must belong to the same event.",
                    level_id=resolved_level.pk,
                    event_id=event.pk,
                )

        if LinkageLedger.exists(sponsor, event):
            raise Conflict("This sponsor is already linked to this event.", sponsor_id=sponsor.pk, event_id=event.pk)
        try:
            with transaction.atomic():
                link = SponsorEventLink.objects.create(sponsor=sponsor, event=event, level=resolved_level)
        except IntegrityError:
            raise Conflict(
                "This sponsor is already linked to this event.",
                sponsor_id=sponsor.pk,
                event_id=event.pk,
            ) from None

        logger.info(
            "Sponsor %d linked to event %d (level: %s)",
            sponsor.pk,
            event.pk,
            resolved_level.pk if resolved_level else None,
        )
        return link

    @staticmethod
    @transaction.atomic
    def unlink(sponsor: Sponsor | int, event: Event | int) -> int | None:
        """Remove the link for a pair.

        The ledger does not release the level slot; callers that own the
        slot decrement it with the returned level id.

        Returns:
            The primary key of the level the link held, or ``None``.

        Raises:
            NotFound: If the sponsor is not linked to the event.
        """
        sponsor_id = sponsor.pk if isinstance(sponsor, Sponsor) else sponsor
        event_id = event.pk if isinstance(event, Event) else event
        link = SponsorEventLink.objects.select_for_update().filter(sponsor_id=sponsor_id, event_id=event_id).first()
        if link is None:
            raise NotFound("Sponsor is not linked to this event.", sponsor_id=sponsor_id, event_id=event_id)

        level_id = link.level_id
        link.delete()
        logger.info("Sponsor %d unlinked from event %d", sponsor_id, event_id)
        return level_id

    @staticmethod
    def list_for_event(event: Event | int) -> models.QuerySet[SponsorEventLink]:
        """Return the event's sponsor links, ordered by level then link date."""
        event_id = event.pk if isinstance(event, Event) else event
        return (
            SponsorEventLink.objects.filter(event_id=event_id)
            .select_related("sponsor", "level")
            .order_by(models.F("level__order").asc(nulls_last=True), "linked_at", "pk")
        )

    @staticmethod
    def list_for_sponsor(sponsor: Sponsor | int) -> models.QuerySet[SponsorEventLink]:
        """Return the sponsor's event links, most recent event first."""
        sponsor_id = sponsor.pk if isinstance(sponsor, Sponsor) else sponsor
        return (
            SponsorEventLink.objects.filter(sponsor_id=sponsor_id)
            .select_related("event", "level")
            .order_by("-event__start_date", "pk")
        )


class LinkageService:
    """Stateless service for linking sponsors to events directly.

    Used when an organizer attaches a sponsor without a prior expression
    of interest.  Applies the same capacity rules as EOI approval.
    """

    @staticmethod
    @transaction.atomic
    def link_sponsor(
        sponsor: Sponsor | int,
        event: Event | int,
        level: SponsorshipLevel | int | None = None,
    ) -> SponsorEventLink:
        """Link a sponsor to an event, claiming a slot on *level* if given.

        Raises:
            NotFound: If the sponsor, event, or level does not exist.
            ValidationFailed: If the event does not accept sponsors or the
                level is not a usable level of the event.
            Conflict: If the pair is already linked.
            CapacityExhausted: If the level has no free slots.
        """
        sponsor = resolve_sponsor(sponsor)
        event = resolve_event(event)
        if not is_feature_enabled("sponsorship", event):
            raise ValidationFailed("Sponsorship is not enabled for this event.", event_id=event.pk)
        if LinkageLedger.exists(sponsor, event):
            raise Conflict("This sponsor is already linked to this event.", sponsor_id=sponsor.pk, event_id=event.pk)

        resolved_level = None
        if level is not None:
            resolved_level = resolve_level_for_event(level, event)
            if resolved_level.available_slots == 0:
                raise CapacityExhausted("No available slots for this level.", level_id=resolved_level.pk)
            claimed = LevelRegistry.increment(resolved_level.pk)
            if not claimed.applied:
                raise CapacityExhausted("No available slots for this level.", level_id=resolved_level.pk)
            resolved_level = claimed.level

        return LinkageLedger.link(sponsor, event, resolved_level)

    @staticmethod
    @transaction.atomic
    def unlink_sponsor(sponsor: Sponsor | int, event: Event | int) -> int | None:
        """Unlink a sponsor from an event and release its level slot.

        Returns:
            The primary key of the level that was released, or ``None``.

        Raises:
            NotFound: If the sponsor is not linked to the event.
        """
        level_id = LinkageLedger.unlink(sponsor, event)
        if level_id is not None:
            LevelRegistry.decrement(level_id)
        return level_id

    @staticmethod
    @transaction.atomic
    def change_level(
        sponsor: Sponsor | int,
        event: Event | int,
        level: SponsorshipLevel | int | None,
    ) -> SponsorEventLink:
        """Move an existing link to a different level of the same event.

        The new slot is claimed before the old one is released, so a full
        target level leaves the link exactly as it was.

        Raises:
            NotFound: If the pair is not linked or the level does not exist.
            ValidationFailed: If the level is not a usable level of the event.
            CapacityExhausted: If the target level has no free slots.
        """
        sponsor_id = sponsor.pk if isinstance(sponsor, Sponsor) else sponsor
        event = resolve_event(event)
        link = (
            SponsorEventLink.objects.select_for_update()
            .filter(sponsor_id=sponsor_id, event_id=event.pk)
            .first()
        )
        if link is None:
            raise NotFound("Sponsor is not linked to this event.", sponsor_id=sponsor_id, event_id=event.pk)

        new_level = resolve_level_for_event(level, event) if level is not None else None
        new_level_id = new_level.pk if new_level else None
        if new_level_id == link.level_id:
            return link

        old_level = link.level
        if new_level is not None:
            claimed = LevelRegistry.increment(new_level.pk)
            if not claimed.applied:
                raise CapacityExhausted("No available slots for this level.", level_id=new_level.pk)
            new_level = claimed.level
        if old_level is not None:
            old_level = LevelRegistry.decrement(old_level.pk).level

        link.level = new_level
        link.save(update_fields=["level"])
        logger.info(
            "Sponsor %d moved from level %s to level %s on event %d",
            sponsor_id,
            old_level.pk if old_level else None,
            new_level_id,
            event.pk,
        )
        send_notification(
            sponsor_level_changed,
            "sponsor_level_changed",
            SponsorEventLink,
            link=link,
            old_level=old_level,
            new_level=new_level,
        )
        return link
