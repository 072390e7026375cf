"""Domain errors raised by the sponsorship services.

Every error carries a machine-readable ``code`` and the HTTP status the
management API answers with, so the view layer can turn any of them into
a JSON envelope without a lookup table.
"""


class SponsorshipError(Exception):
    """Base class for all sponsorship engine errors."""

    code = "error"
    http_status = 400

    def __init__(self, message: str = "", **context: object) -> None:
        """Store the human-readable message and the ids involved.

        Args:
            message: Explanation suitable for showing to an organizer.
            **context: Identifiers of the records involved (``eoi_id``,
                ``level_id``, ...), echoed back in API error payloads.
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def as_dict(self) -> dict[str, object]:
        """Return the error payload used in API envelopes."""
        payload: dict[str, object] = {"code": self.code, "message": self.message}
        if self.context:
            payload["context"] = self.context
        return payload


class NotFound(SponsorshipError):
    """A referenced EOI, level, link, sponsor, or event does not exist."""

    code = "not_found"
    http_status = 404


class Conflict(SponsorshipError):
    """The operation clashes with existing state (duplicate link, level in use)."""

    code = "conflict"
    http_status = 409


class CapacityExhausted(SponsorshipError):
    """A slot was requested from a level that has none left."""

    code = "capacity_exhausted"
    http_status = 409


class ValidationFailed(SponsorshipError):
    """Required identifiers or fields are missing or invalid."""

    code = "validation_failed"
    http_status = 400


class Unauthorized(SponsorshipError):
    """The permission or anti-forgery check failed."""

    code = "unauthorized"
    http_status = 403


class PersistenceFailure(SponsorshipError):
    """The storage layer raised an error while applying a change."""

    code = "persistence_failure"
    http_status = 500
