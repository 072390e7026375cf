"""Tests for the feature toggle system."""

from datetime import date

import pytest
from django.http import Http404, HttpRequest, HttpResponse
from django.test import RequestFactory, override_settings
from django.views import View

from django_sponsorship.events.models import Event
from django_sponsorship.features import FeatureRequiredMixin, is_feature_enabled, require_feature
from django_sponsorship.settings import get_config

ALL_FEATURES = ("sponsorship", "sponsorship_levels", "eoi", "manage_api")


def _event(**flags: bool) -> Event:
    return Event(
        name="Flag Event",
        slug="flag-event",
        start_date=date(2026, 9, 1),
        end_date=date(2026, 9, 2),
        **flags,
    )


# ---------------------------------------------------------------------------
# Settings-level toggles
# ---------------------------------------------------------------------------


class TestSettingsToggles:
    def test_all_features_enabled_by_default(self) -> None:
        config = get_config().features
        for feature in ALL_FEATURES:
            assert getattr(config, f"{feature}_enabled") is True
            assert is_feature_enabled(feature) is True

    def test_features_config_is_frozen(self) -> None:
        config = get_config().features
        with pytest.raises(AttributeError):
            config.eoi_enabled = False  # type: ignore[misc]

    def test_unknown_feature_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown feature"):
            is_feature_enabled("tickets")

    @override_settings(DJANGO_SPONSORSHIP={"features": {"eoi_enabled": False}})
    def test_single_feature_disabled(self) -> None:
        assert is_feature_enabled("eoi") is False
        assert is_feature_enabled("sponsorship") is True

    @override_settings(DJANGO_SPONSORSHIP={"features": {"sponsorship_enabled": False}})
    def test_master_switch_disables_everything(self) -> None:
        for feature in ALL_FEATURES:
            assert is_feature_enabled(feature) is False


# ---------------------------------------------------------------------------
# Per-event flags
# ---------------------------------------------------------------------------


class TestEventFlags:
    def test_event_without_sponsorship(self) -> None:
        event = _event(sponsorship_enabled=False, sponsorship_levels_enabled=True)
        assert is_feature_enabled("sponsorship", event) is False
        assert is_feature_enabled("eoi", event) is False
        assert is_feature_enabled("sponsorship_levels", event) is False

    def test_levels_need_both_flags(self) -> None:
        event = _event(sponsorship_enabled=True, sponsorship_levels_enabled=False)
        assert is_feature_enabled("sponsorship", event) is True
        assert is_feature_enabled("sponsorship_levels", event) is False

        event.sponsorship_levels_enabled = True
        assert is_feature_enabled("sponsorship_levels", event) is True

    def test_features_without_event_flags_ignore_the_event(self) -> None:
        event = _event(sponsorship_enabled=False)
        assert is_feature_enabled("manage_api", event) is True

    @override_settings(DJANGO_SPONSORSHIP={"features": {"sponsorship_levels_enabled": False}})
    def test_settings_override_event_flags(self) -> None:
        event = _event(sponsorship_enabled=True, sponsorship_levels_enabled=True)
        assert is_feature_enabled("sponsorship_levels", event) is False


# ---------------------------------------------------------------------------
# require_feature and FeatureRequiredMixin
# ---------------------------------------------------------------------------


class _GatedView(FeatureRequiredMixin, View):
    required_feature = ("manage_api", "eoi")

    def get(self, request: HttpRequest) -> HttpResponse:
        return HttpResponse("ok")


def test_require_feature_passes_when_enabled() -> None:
    require_feature("eoi")


@override_settings(DJANGO_SPONSORSHIP={"features": {"eoi_enabled": False}})
def test_require_feature_raises_404() -> None:
    with pytest.raises(Http404):
        require_feature("eoi")


def test_mixin_dispatches_when_enabled() -> None:
    response = _GatedView.as_view()(RequestFactory().get("/"))
    assert response.status_code == 200


@override_settings(DJANGO_SPONSORSHIP={"features": {"manage_api_enabled": False}})
def test_mixin_raises_404_when_any_feature_disabled() -> None:
    with pytest.raises(Http404):
        _GatedView.as_view()(RequestFactory().get("/"))
