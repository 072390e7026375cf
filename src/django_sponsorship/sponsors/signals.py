"""Notification signals for the sponsorship engine.

E-mail composition lives outside this package.  Host projects connect
receivers to these signals to send messages; the engine only announces
what happened, once the surrounding transaction has committed.

Signals:
    eoi_submitted: A sponsor submitted a new expression of interest.
        Kwargs: ``eoi``.
    eoi_approved: An expression of interest moved to APPROVED.
        Kwargs: ``eoi``, ``level`` (may be ``None``), ``reviewer``.
    eoi_rejected: An expression of interest moved to REJECTED.
        Kwargs: ``eoi``, ``reason``, ``reviewer``.
    eoi_info_requested: The reviewer asked the sponsor for more detail.
        Kwargs: ``eoi``, ``message``, ``reviewer``.
    sponsor_level_changed: A linked sponsor moved to another level.
        Kwargs: ``link``, ``old_level``, ``new_level``.
"""

import logging

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

eoi_submitted = Signal()
eoi_approved = Signal()
eoi_rejected = Signal()
eoi_info_requested = Signal()
sponsor_level_changed = Signal()


def send_notification(signal: Signal, name: str, sender: type, **kwargs: object) -> None:
    """Fire *signal* after the current transaction commits.

    Receivers run through ``send_robust`` so a failing mail backend never
    undoes the state change that triggered it; failures are logged instead.

    Args:
        signal: One of the notification signals defined in this module.
        name: Signal name used in log messages.
        sender: The model class sending the notification.
        **kwargs: Keyword arguments forwarded to the receivers.
    """

    def _dispatch() -> None:
        for receiver, response in signal.send_robust(sender=sender, **kwargs):
            if isinstance(response, Exception):
                logger.error(
                    "Notification receiver %s failed for %s: %s",
                    getattr(receiver, "__qualname__", repr(receiver)),
                    name,
                    response,
                    exc_info=response,
                )

    transaction.on_commit(_dispatch)
