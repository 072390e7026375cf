"""Bulk review of expressions of interest.

Applies one review action to many EOIs.  Every EOI is handled in its own
transaction through ``EOIService``, so one full level or missing record
only fails that item; the rest of the batch still goes through.
"""

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from django.contrib.auth.models import AbstractBaseUser, AnonymousUser
from django.db import DatabaseError

from django_sponsorship.settings import get_config
from django_sponsorship.sponsors.exceptions import PersistenceFailure, SponsorshipError, ValidationFailed
from django_sponsorship.sponsors.services.eoi import EOIService, TransitionResult

logger = logging.getLogger(__name__)


class BulkAction(enum.StrEnum):
    """Review actions that can be applied in bulk."""

    APPROVE = "approve"
    REJECT = "reject"


class ItemOutcome(enum.StrEnum):
    """Per-item result of a bulk action."""

    SUCCESS = "success"
    NOOP = "noop"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class BulkItemOutcome:
    """What happened to one EOI in a bulk action.

    Attributes:
        eoi_id: The EOI primary key, or the submitted text when it is not
            a number.
        outcome: ``success``, ``noop`` (already in the target state), or
            ``error``.
        status: The EOI status after the action, when it could be read.
        error_code: The ``SponsorshipError.code`` for failed items.
        message: Human-readable detail for failed items.
    """

    eoi_id: object
    outcome: ItemOutcome
    status: str | None = None
    error_code: str | None = None
    message: str = ""

    def as_dict(self) -> dict[str, object]:
        """Return a JSON-serializable representation."""
        data: dict[str, object] = {"eoi_id": self.eoi_id, "outcome": str(self.outcome)}
        if self.status is not None:
            data["status"] = self.status
        if self.error_code is not None:
            data["error"] = {"code": self.error_code, "message": self.message}
        return data


@dataclass(slots=True)
class BulkResult:
    """Aggregated result of a bulk action."""

    action: BulkAction
    items: list[BulkItemOutcome] = field(default_factory=list)

    def _count(self, outcome: ItemOutcome) -> int:
        return sum(1 for item in self.items if item.outcome == outcome)

    @property
    def succeeded(self) -> int:
        """Number of EOIs that changed state."""
        return self._count(ItemOutcome.SUCCESS)

    @property
    def skipped(self) -> int:
        """Number of EOIs that were already in the target state."""
        return self._count(ItemOutcome.NOOP)

    @property
    def failed(self) -> int:
        """Number of EOIs that could not be processed."""
        return self._count(ItemOutcome.ERROR)

    def summary(self) -> dict[str, int]:
        """Return the outcome counts."""
        return {
            "total": len(self.items),
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "failed": self.failed,
        }

    def as_dict(self) -> dict[str, object]:
        """Return a JSON-serializable representation."""
        return {
            "action": str(self.action),
            "summary": self.summary(),
            "items": [item.as_dict() for item in self.items],
        }


def _unique_ids(eoi_ids: Iterable[object]) -> list[int | str]:
    """Parse *eoi_ids*, keeping first-seen order and dropping repeats.

    Identifiers that are not integers are kept as stripped strings so they
    can be reported back as invalid.
    """
    seen: set[int | str] = set()
    ordered: list[int | str] = []
    for raw in eoi_ids:
        text = str(raw).strip()
        try:
            key: int | str = int(text)
        except ValueError:
            key = text
        if key in seen:
            continue
        seen.add(key)
        ordered.append(key)
    return ordered


def _apply_one(
    action: BulkAction,
    eoi_id: int,
    reviewer: AbstractBaseUser | AnonymousUser | None,
    reason: str,
) -> TransitionResult:
    if action == BulkAction.APPROVE:
        return EOIService.approve(eoi_id, reviewer=reviewer, use_preferred_level=True)
    return EOIService.reject(eoi_id, reason, reviewer=reviewer)


def bulk_apply(
    action: str,
    eoi_ids: Iterable[object],
    *,
    reviewer: AbstractBaseUser | AnonymousUser | None = None,
    reason: str = "",
) -> BulkResult:
    """Apply *action* to every EOI in *eoi_ids*.

    Approving uses each EOI's assigned or preferred level; EOIs that are
    already approved are reported as ``noop``.  Rejecting reverses earlier
    approvals item by item.  Repeated identifiers are processed once.

    Args:
        action: ``"approve"`` or ``"reject"``.
        eoi_ids: EOI primary keys.
        reviewer: The user performing the review.
        reason: Review note stored on rejected EOIs.

    Returns:
        A ``BulkResult`` with one ``BulkItemOutcome`` per distinct id.

    Raises:
        ValidationFailed: If the action is unknown, no ids are given, or
            the batch exceeds ``bulk_max_items``.
    """
    try:
        bulk_action = BulkAction(action)
    except ValueError:
        raise ValidationFailed(f"Unknown bulk action: {action!r}.", action=action) from None

    ids = _unique_ids(eoi_ids)
    if not ids:
        raise ValidationFailed("No expressions of interest selected.", action=str(bulk_action))
    max_items = get_config().bulk_max_items
    if len(ids) > max_items:
        raise ValidationFailed(f"At most {max_items} expressions of interest can be processed at once.")

    result = BulkResult(action=bulk_action)
    for eoi_id in ids:
        if isinstance(eoi_id, str):
            result.items.append(
                BulkItemOutcome(
                    eoi_id=eoi_id,
                    outcome=ItemOutcome.ERROR,
                    error_code=ValidationFailed.code,
                    message="Invalid EOI ID.",
                )
            )
            continue

        try:
            transition = _apply_one(bulk_action, eoi_id, reviewer, reason)
        except SponsorshipError as exc:
            result.items.append(
                BulkItemOutcome(eoi_id=eoi_id, outcome=ItemOutcome.ERROR, error_code=exc.code, message=exc.message)
            )
            continue
        except DatabaseError:
            logger.exception("Bulk %s failed for EOI #%d", bulk_action, eoi_id)
            result.items.append(
                BulkItemOutcome(
                    eoi_id=eoi_id,
                    outcome=ItemOutcome.ERROR,
                    error_code=PersistenceFailure.code,
                    message="Database update failed.",
                )
            )
            continue

        result.items.append(
            BulkItemOutcome(
                eoi_id=eoi_id,
                outcome=ItemOutcome.SUCCESS if transition.changed else ItemOutcome.NOOP,
                status=transition.eoi.status,
            )
        )

    logger.info(
        'Bulk EOI action "%s" applied to %d submissions (%d succeeded, %d skipped, %d failed)',
        bulk_action,
        len(result.items),
        result.succeeded,
        result.skipped,
        result.failed,
    )
    return result
