"""Feature toggle utilities for django-sponsorship.

Provides functions to check whether specific features are enabled
in the current configuration, and a mixin for views that require
specific features.

Features can be switched off at two levels:

1. **Settings defaults** -- ``DJANGO_SPONSORSHIP["features"]`` in Django
   settings.  These require a server restart to change.
2. **Per-event flags** -- ``Event.sponsorship_enabled`` and
   ``Event.sponsorship_levels_enabled``.  When an event is supplied, the
   matching flag must also be on for the feature to count as enabled.
"""

from django.http import Http404, HttpRequest, HttpResponse

from django_sponsorship.settings import get_config

_EVENT_FLAGS: dict[str, tuple[str, ...]] = {
    "sponsorship": ("sponsorship_enabled",),
    "sponsorship_levels": ("sponsorship_enabled", "sponsorship_levels_enabled"),
    "eoi": ("sponsorship_enabled",),
}


def is_feature_enabled(feature: str, event: object | None = None) -> bool:
    """Check if a feature is enabled, optionally for a specific event.

    Resolution order:

    1. The ``sponsorship`` master switch in settings disables every
       sponsorship feature when off.
    2. The settings default for *feature* must be on.
    3. If an *event* is provided, every event flag mapped to *feature* must
       be on as well.

    Args:
        feature: Feature name (e.g., ``"sponsorship"``, ``"eoi"``,
            ``"manage_api"``).
        event: Optional event instance whose own flags are consulted.

    Returns:
        ``True`` if the feature is enabled, ``False`` otherwise.

    Raises:
        ValueError: If the feature name is not recognized.
    """
    config = get_config().features
    attr = f"{feature}_enabled"

    if not hasattr(config, attr):
        msg = f"Unknown feature: {feature!r}"
        raise ValueError(msg)

    if not config.sponsorship_enabled or not getattr(config, attr):
        return False

    if event is not None:
        return all(getattr(event, flag, False) for flag in _EVENT_FLAGS.get(feature, ()))
    return True


def require_feature(feature: str, event: object | None = None) -> None:
    """Raise :class:`~django.http.Http404` if a feature is disabled.

    Args:
        feature: Feature name to check.
        event: Optional event for per-event flags.

    Raises:
        Http404: If the feature is disabled.
    """
    if not is_feature_enabled(feature, event=event):
        raise Http404(f"Feature {feature!r} is not enabled")


class FeatureRequiredMixin:
    """View mixin that returns 404 when a required feature is disabled.

    Set ``required_feature`` on the view class to the feature name or a
    tuple of feature names (all must be enabled).  Only the settings-level
    toggles are consulted here; event flags are enforced by the services
    once the event is known.

    Example::

        class EOIApproveView(FeatureRequiredMixin, View):
            required_feature = ("eoi", "manage_api")
    """

    required_feature: str | tuple[str, ...] = ""

    def dispatch(self, request: HttpRequest, *args: object, **kwargs: object) -> HttpResponse:
        """Check the feature toggle(s) before dispatching the view."""
        features = self.required_feature
        if isinstance(features, str):
            features = (features,) if features else ()
        for feature in features:
            require_feature(feature)
        return super().dispatch(request, *args, **kwargs)  # type: ignore[misc]
