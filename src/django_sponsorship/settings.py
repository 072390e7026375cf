"""Typed configuration for django-sponsorship.

Reads a single ``DJANGO_SPONSORSHIP`` dict from Django settings and exposes it
as composed, frozen dataclasses with sensible defaults.

Usage::

    from django_sponsorship.settings import get_config

    config = get_config()
    config.search_limit
    config.features.eoi_enabled
    config.default_levels[0].name
"""

import functools
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from django.conf import settings
from django.test.signals import setting_changed


@dataclass(frozen=True, slots=True)
class FeaturesConfig:
    """Feature toggles for enabling/disabling sponsorship modules.

    All features are enabled by default. Set to ``False`` in
    ``DJANGO_SPONSORSHIP['features']`` to disable.
    """

    sponsorship_enabled: bool = True
    sponsorship_levels_enabled: bool = True
    eoi_enabled: bool = True
    manage_api_enabled: bool = True


@dataclass(frozen=True, slots=True)
class DefaultLevelConfig:
    """One tier created by ``LevelRegistry.populate_defaults``."""

    name: str
    colour: str = "#CD7F32"
    value: Decimal = Decimal("0.00")
    slots_total: int | None = None
    recognition_text: str = ""
    order: int = 0


DEFAULT_LEVELS: tuple[DefaultLevelConfig, ...] = (
    DefaultLevelConfig(
        name="Bronze",
        colour="#CD7F32",
        value=Decimal("1000.00"),
        slots_total=10,
        recognition_text="Logo on event website, acknowledgement in program",
        order=1,
    ),
    DefaultLevelConfig(
        name="Silver",
        colour="#C0C0C0",
        value=Decimal("2500.00"),
        slots_total=5,
        recognition_text="All Bronze benefits + logo on signage, trade display space",
        order=2,
    ),
    DefaultLevelConfig(
        name="Gold",
        colour="#FFD700",
        value=Decimal("5000.00"),
        slots_total=3,
        recognition_text="All Silver benefits + named session sponsorship, prime booth location",
        order=3,
    ),
)


@dataclass(frozen=True, slots=True)
class SponsorshipConfig:
    """Top-level django-sponsorship configuration."""

    features: FeaturesConfig = field(default_factory=FeaturesConfig)
    default_levels: tuple[DefaultLevelConfig, ...] = DEFAULT_LEVELS
    search_min_length: int = 2
    search_limit: int = 10
    bulk_max_items: int = 200
    action_token_max_age: int = 3600


@functools.lru_cache(maxsize=1)
def get_config() -> SponsorshipConfig:
    """Build and return the sponsorship configuration.

    Reads ``settings.DJANGO_SPONSORSHIP`` (a plain dict) and returns a frozen
    :class:`SponsorshipConfig`.  The result is cached; the cache is cleared
    automatically when Django's ``setting_changed`` signal fires (e.g. inside
    ``override_settings``).
    """
    raw = getattr(settings, "DJANGO_SPONSORSHIP", {})
    if not isinstance(raw, Mapping):
        msg = "DJANGO_SPONSORSHIP must be a mapping (dict-like object)"
        raise TypeError(msg)
    raw_data = dict(raw)

    features_data = raw_data.pop("features", {})
    if not isinstance(features_data, Mapping):
        msg = "DJANGO_SPONSORSHIP['features'] must be a mapping (dict-like object)"
        raise TypeError(msg)

    levels_data = raw_data.pop("default_levels", None)
    default_levels = DEFAULT_LEVELS if levels_data is None else _build_default_levels(levels_data)

    config = SponsorshipConfig(
        features=FeaturesConfig(**dict(features_data)),
        default_levels=default_levels,
        **raw_data,
    )
    _validate_sponsorship_config(config)
    return config


def _build_default_levels(levels_data: object) -> tuple[DefaultLevelConfig, ...]:
    """Convert the ``default_levels`` list of mappings into dataclasses."""
    if not isinstance(levels_data, list | tuple):
        msg = "DJANGO_SPONSORSHIP['default_levels'] must be a list of mappings"
        raise TypeError(msg)

    levels = []
    for idx, item in enumerate(levels_data):
        if not isinstance(item, Mapping):
            msg = f"DJANGO_SPONSORSHIP['default_levels'][{idx}] must be a mapping (dict-like object)"
            raise TypeError(msg)
        if not item.get("name"):
            msg = f"DJANGO_SPONSORSHIP['default_levels'][{idx}] is missing required field: name"
            raise ValueError(msg)
        data = dict(item)
        if "value" in data:
            data["value"] = Decimal(str(data["value"]))
        levels.append(DefaultLevelConfig(**data))
    return tuple(levels)


def _validate_sponsorship_config(config: SponsorshipConfig) -> None:
    """Validate high-impact configuration values with clear error messages."""
    if not isinstance(config.search_min_length, int) or config.search_min_length < 1:
        msg = "DJANGO_SPONSORSHIP['search_min_length'] must be a positive integer"
        raise ValueError(msg)
    if not isinstance(config.search_limit, int) or config.search_limit <= 0:
        msg = "DJANGO_SPONSORSHIP['search_limit'] must be a positive integer"
        raise ValueError(msg)
    if not isinstance(config.bulk_max_items, int) or config.bulk_max_items <= 0:
        msg = "DJANGO_SPONSORSHIP['bulk_max_items'] must be a positive integer"
        raise ValueError(msg)
    if not isinstance(config.action_token_max_age, int) or config.action_token_max_age <= 0:
        msg = "DJANGO_SPONSORSHIP['action_token_max_age'] must be a positive integer"
        raise ValueError(msg)
    if not config.default_levels:
        msg = "DJANGO_SPONSORSHIP['default_levels'] must not be empty"
        raise ValueError(msg)
    for level in config.default_levels:
        if level.slots_total is not None and (not isinstance(level.slots_total, int) or level.slots_total < 0):
            msg = f"DJANGO_SPONSORSHIP['default_levels'] slots_total for {level.name!r} must be a non-negative integer"
            raise ValueError(msg)


def _clear_config_cache(*, setting: str, **kwargs: object) -> None:  # noqa: ARG001
    """Clear the cached config when Django settings change during tests."""
    if setting == "DJANGO_SPONSORSHIP":
        get_config.cache_clear()


setting_changed.connect(_clear_config_cache, dispatch_uid="django_sponsorship.settings.clear_config_cache")
