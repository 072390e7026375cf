"""Expression of interest lifecycle.

An expression of interest (EOI) starts as PENDING and is moved by a
reviewer to APPROVED, REJECTED, or INFO_REQUESTED.  APPROVED and REJECTED
can be flipped back and forth; every transition locks the EOI row and
works out its side effects from the status stored at that moment, so a
repeated click never claims or releases a slot twice.

Approval is a single atomic unit: if the level is full or invalid, the
status change is rolled back together with the slot and the link.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from django.contrib.auth.models import AbstractBaseUser, AnonymousUser
from django.db import IntegrityError, models, transaction
from django.utils import timezone

from django_sponsorship.events.models import Event
from django_sponsorship.features import is_feature_enabled
from django_sponsorship.sponsors.exceptions import CapacityExhausted, Conflict, NotFound, ValidationFailed
from django_sponsorship.sponsors.models import ExpressionOfInterest, Sponsor, SponsorshipLevel
from django_sponsorship.sponsors.services.levels import LevelRegistry, resolve_event
from django_sponsorship.sponsors.services.linkage import LinkageLedger, resolve_level_for_event, resolve_sponsor
from django_sponsorship.sponsors.signals import (
    eoi_approved,
    eoi_info_requested,
    eoi_rejected,
    eoi_submitted,
    send_notification,
)

logger = logging.getLogger(__name__)

Status = ExpressionOfInterest.Status


@dataclass(frozen=True, slots=True)
class TransitionResult:
    """Outcome of an EOI review action.

    Attributes:
        eoi: The expression of interest as stored after the action.
        changed: ``False`` when the EOI was already in the target state and
            nothing was written.
        level: The level the sponsor holds after the action, if any.
    """

    eoi: ExpressionOfInterest
    changed: bool
    level: SponsorshipLevel | None = None


def _reviewer_or_none(reviewer: AbstractBaseUser | AnonymousUser | None) -> AbstractBaseUser | None:
    if reviewer is None or not reviewer.is_authenticated:
        return None
    return reviewer


def _lock_eoi(eoi_id: int) -> ExpressionOfInterest:
    try:
        return ExpressionOfInterest.objects.select_for_update().get(pk=eoi_id)
    except (ExpressionOfInterest.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"EOI {eoi_id} not found.", eoi_id=eoi_id) from None


def _stamp_review(
    eoi: ExpressionOfInterest,
    status: str,
    reviewer: AbstractBaseUser | AnonymousUser | None,
    notes: str | None = None,
) -> None:
    eoi.status = status
    eoi.reviewed_at = timezone.now()
    eoi.reviewed_by = _reviewer_or_none(reviewer)
    update_fields = ["status", "reviewed_at", "reviewed_by"]
    if notes is not None:
        eoi.review_notes = notes
        update_fields.append("review_notes")
    if status == Status.APPROVED:
        update_fields.append("level")
    eoi.save(update_fields=update_fields)


def _reviewer_label(reviewer: AbstractBaseUser | AnonymousUser | None) -> object:
    reviewer = _reviewer_or_none(reviewer)
    return reviewer.pk if reviewer is not None else None


class EOIService:
    """Stateless service for submitting and reviewing expressions of interest."""

    @staticmethod
    def get(eoi_id: int) -> ExpressionOfInterest:
        """Return an EOI by primary key.

        Raises:
            NotFound: If the EOI does not exist.
        """
        try:
            return ExpressionOfInterest.objects.select_related("sponsor", "event", "level").get(pk=eoi_id)
        except (ExpressionOfInterest.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"EOI {eoi_id} not found.", eoi_id=eoi_id) from None

    @staticmethod
    def list_for_event(event: Event | int, status: str | None = None) -> models.QuerySet[ExpressionOfInterest]:
        """Return an event's EOIs, newest first, optionally filtered by status."""
        qs = ExpressionOfInterest.objects.filter(event=resolve_event(event)).select_related("sponsor", "level")
        if status:
            qs = qs.filter(status=status)
        return qs.order_by("-submitted_at", "-pk")

    @staticmethod
    @transaction.atomic
    def submit(
        sponsor: Sponsor | int,
        event: Event | int,
        *,
        preferred_level: str = "",
        disclosures: Mapping[str, object] | None = None,
    ) -> ExpressionOfInterest:
        """Record a new PENDING expression of interest.

        Receives the already validated answers of the submission form as a
        flat mapping and stores them untouched.

        Args:
            sponsor: The applying sponsor (or primary key).
            event: The event being applied for (or primary key).
            preferred_level: The level the sponsor asked for, free-form.
            disclosures: The remaining form answers.

        Returns:
            The created EOI.

        Raises:
            NotFound: If the sponsor or event does not exist.
            ValidationFailed: If the event is not accepting expressions of
                interest, the sponsor is inactive, or *disclosures* is not a
                mapping.
            Conflict: If the sponsor already has an EOI for the event.
        """
        sponsor = resolve_sponsor(sponsor)
        event = resolve_event(event)
        if not is_feature_enabled("eoi", event):
            raise ValidationFailed("Sponsorship is not enabled for this event.", event_id=event.pk)
        if not sponsor.is_active:
            raise ValidationFailed("Sponsor profile is not active.", sponsor_id=sponsor.pk)
        if disclosures is not None and not isinstance(disclosures, Mapping):
            raise ValidationFailed("Disclosures must be a mapping of field names to values.", sponsor_id=sponsor.pk)

        if ExpressionOfInterest.objects.filter(sponsor=sponsor, event=event).exists():
            raise Conflict(
                "An expression of interest for this event has already been submitted.",
                sponsor_id=sponsor.pk,
                event_id=event.pk,
            )
        try:
            with transaction.atomic():
                eoi = ExpressionOfInterest.objects.create(
                    sponsor=sponsor,
                    event=event,
                    preferred_level=(preferred_level or "").strip()[:100],
                    disclosures=dict(disclosures or {}),
                )
        except IntegrityError:
            raise Conflict(
                "An expression of interest for this event has already been submitted.",
                sponsor_id=sponsor.pk,
                event_id=event.pk,
            ) from None

        logger.info("EOI #%d submitted by sponsor #%d for event #%d", eoi.pk, sponsor.pk, event.pk)
        send_notification(eoi_submitted, "eoi_submitted", ExpressionOfInterest, eoi=eoi)
        return eoi

    @staticmethod
    @transaction.atomic
    def approve(
        eoi_id: int,
        level: SponsorshipLevel | int | None = None,
        *,
        reviewer: AbstractBaseUser | AnonymousUser | None = None,
        use_preferred_level: bool = False,
    ) -> TransitionResult:
        """Approve an EOI, claim its level slot, and link the sponsor.

        Approving an already approved EOI does nothing.  The level used is,
        in order: *level*; the level assigned by an earlier approval, unless
        it has since been disabled; the sponsor's preferred level when
        *use_preferred_level* is set; none.

        Args:
            eoi_id: Primary key of the EOI.
            level: Level to place the sponsor at.
            reviewer: The user performing the review.
            use_preferred_level: Fall back to matching ``preferred_level``
                against the event's levels.

        Returns:
            A ``TransitionResult``; ``changed`` is ``False`` for a repeat
            approval.

        Raises:
            NotFound: If the EOI or level does not exist.
            ValidationFailed: If sponsorship is switched off for the event or
                *level* is not a usable level of the event.
            CapacityExhausted: If the level has no free slots.
            Conflict: If the sponsor is already linked to the event.
        """
        eoi = _lock_eoi(eoi_id)
        if eoi.status == Status.APPROVED:
            logger.info("EOI #%d already approved, skipping", eoi.pk)
            return TransitionResult(eoi=eoi, changed=False, level=eoi.level)

        if not is_feature_enabled("sponsorship", eoi.event):
            raise ValidationFailed("Sponsorship is not enabled for this event.", eoi_id=eoi.pk, event_id=eoi.event_id)

        resolved_level = None
        if level is not None:
            resolved_level = resolve_level_for_event(level, eoi.event)
        elif eoi.level is not None and eoi.level.enabled:
            resolved_level = eoi.level
        elif use_preferred_level:
            resolved_level = LevelRegistry.match_label(eoi.event, eoi.preferred_level)

        if resolved_level is not None:
            claimed = LevelRegistry.increment(resolved_level.pk)
            if not claimed.applied:
                raise CapacityExhausted(
                    f'No available slots for level "{resolved_level.name}".',
                    eoi_id=eoi.pk,
                    level_id=resolved_level.pk,
                )
            resolved_level = claimed.level

        LinkageLedger.link(eoi.sponsor, eoi.event, resolved_level)

        eoi.level = resolved_level
        _stamp_review(eoi, Status.APPROVED, reviewer)

        logger.info(
            "EOI #%d approved for sponsor #%d, event #%d by user #%s",
            eoi.pk,
            eoi.sponsor_id,
            eoi.event_id,
            _reviewer_label(reviewer),
        )
        send_notification(
            eoi_approved,
            "eoi_approved",
            ExpressionOfInterest,
            eoi=eoi,
            level=resolved_level,
            reviewer=_reviewer_or_none(reviewer),
        )
        return TransitionResult(eoi=eoi, changed=True, level=resolved_level)

    @staticmethod
    @transaction.atomic
    def reject(
        eoi_id: int,
        reason: str = "",
        *,
        reviewer: AbstractBaseUser | AnonymousUser | None = None,
    ) -> TransitionResult:
        """Reject an EOI, undoing an earlier approval if there was one.

        When the EOI is currently APPROVED, the sponsor's link to the event
        is removed and the level slot it held is released.  If an organizer
        already unlinked the sponsor directly, the slot was released then
        and nothing is released again.  Rejecting an already rejected EOI
        does nothing.

        Raises:
            NotFound: If the EOI does not exist.
        """
        eoi = _lock_eoi(eoi_id)
        if eoi.status == Status.REJECTED:
            logger.info("EOI #%d already rejected, skipping", eoi.pk)
            return TransitionResult(eoi=eoi, changed=False)

        if eoi.status == Status.APPROVED:
            if LinkageLedger.exists(eoi.sponsor_id, eoi.event_id):
                released_level_id = LinkageLedger.unlink(eoi.sponsor_id, eoi.event_id)
                if released_level_id is not None:
                    LevelRegistry.decrement(released_level_id)
            else:
                logger.warning(
                    "EOI #%d was approved but sponsor #%d is no longer linked to event #%d; nothing to reverse",
                    eoi.pk,
                    eoi.sponsor_id,
                    eoi.event_id,
                )

        _stamp_review(eoi, Status.REJECTED, reviewer, notes=(reason or "").strip())

        logger.info(
            "EOI #%d rejected by user #%s. Reason: %s",
            eoi.pk,
            _reviewer_label(reviewer),
            eoi.review_notes,
        )
        send_notification(
            eoi_rejected,
            "eoi_rejected",
            ExpressionOfInterest,
            eoi=eoi,
            reason=eoi.review_notes,
            reviewer=_reviewer_or_none(reviewer),
        )
        return TransitionResult(eoi=eoi, changed=True)

    @staticmethod
    @transaction.atomic
    def request_info(
        eoi_id: int,
        message: str,
        *,
        reviewer: AbstractBaseUser | AnonymousUser | None = None,
    ) -> TransitionResult:
        """Ask the sponsor for more information before deciding.

        Has no effect on slots or links.

        Raises:
            NotFound: If the EOI does not exist.
            ValidationFailed: If *message* is empty.
            Conflict: If the EOI is approved; it must be rejected first so
                its slot and link are released.
        """
        message = (message or "").strip()
        if not message:
            raise ValidationFailed("A message for the sponsor is required.", eoi_id=eoi_id)

        eoi = _lock_eoi(eoi_id)
        if eoi.status == Status.APPROVED:
            raise Conflict(
                "Approved expressions of interest must be rejected before requesting more information.",
                eoi_id=eoi.pk,
            )

        _stamp_review(eoi, Status.INFO_REQUESTED, reviewer, notes=message)

        logger.info("More info requested for EOI #%d by user #%s", eoi.pk, _reviewer_label(reviewer))
        send_notification(
            eoi_info_requested,
            "eoi_info_requested",
            ExpressionOfInterest,
            eoi=eoi,
            message=message,
            reviewer=_reviewer_or_none(reviewer),
        )
        return TransitionResult(eoi=eoi, changed=True, level=eoi.level)
