"""Tests for LevelRegistry CRUD and slot accounting."""

import logging
from datetime import date
from decimal import Decimal

import pytest
from django.test import override_settings

from django_sponsorship.events.models import Event
from django_sponsorship.sponsors.exceptions import Conflict, NotFound, ValidationFailed
from django_sponsorship.sponsors.models import Sponsor, SponsorEventLink, SponsorshipLevel
from django_sponsorship.sponsors.services.levels import LevelRegistry, SlotChange


@pytest.fixture
def event(db):
    return Event.objects.create(
        name="PyCon AU 2026",
        slug="pycon-au-2026",
        start_date=date(2026, 8, 26),
        end_date=date(2026, 8, 30),
        sponsorship_enabled=True,
        sponsorship_levels_enabled=True,
    )


@pytest.fixture
def flat_event(db):
    return Event.objects.create(
        name="Meetup",
        slug="meetup",
        start_date=date(2026, 9, 1),
        end_date=date(2026, 9, 1),
        sponsorship_enabled=True,
        sponsorship_levels_enabled=False,
    )


@pytest.fixture
def gold(event):
    return SponsorshipLevel.objects.create(event=event, name="Gold", slots_total=3, order=3)


# ---- add / update / delete ----


@pytest.mark.django_db
class TestAdd:
    def test_creates_level_with_slug(self, event):
        level = LevelRegistry.add(
            event,
            {"name": "Platinum", "colour": "#E5E4E2", "value": Decimal("9000.00"), "slots_total": 1, "order": 4},
        )
        assert level.pk is not None
        assert level.slug == "platinum"
        assert level.slots_filled == 0
        assert level.value == Decimal("9000.00")

    def test_accepts_event_id(self, event):
        level = LevelRegistry.add(event.pk, {"name": "Bronze"})
        assert level.event == event

    def test_ignores_slots_filled(self, event):
        level = LevelRegistry.add(event, {"name": "Silver", "slots_total": 5, "slots_filled": 5})
        assert level.slots_filled == 0

    def test_duplicate_name_gets_suffixed_slug(self, event, gold):
        level = LevelRegistry.add(event, {"name": "Gold"})
        assert level.slug == "gold-2"

    def test_requires_name(self, event):
        with pytest.raises(ValidationFailed, match="name is required"):
            LevelRegistry.add(event, {"name": "   "})

    def test_rejects_invalid_colour(self, event):
        with pytest.raises(ValidationFailed, match="colour"):
            LevelRegistry.add(event, {"name": "Gold", "colour": "yellow"})
        assert not SponsorshipLevel.objects.filter(event=event).exists()

    def test_requires_levels_enabled_for_event(self, flat_event):
        with pytest.raises(ValidationFailed, match="not enabled"):
            LevelRegistry.add(flat_event, {"name": "Gold"})

    def test_unknown_event(self):
        with pytest.raises(NotFound):
            LevelRegistry.add(999999, {"name": "Gold"})


@pytest.mark.django_db
class TestUpdate:
    def test_updates_editable_fields(self, gold):
        level = LevelRegistry.update(gold.pk, {"name": "Gold Plus", "slots_total": 4, "recognition_text": "Keynote"})
        gold.refresh_from_db()
        assert level.name == gold.name == "Gold Plus"
        assert gold.slots_total == 4
        assert gold.recognition_text == "Keynote"
        assert gold.slug == "gold"

    def test_slots_filled_is_not_editable(self, gold):
        LevelRegistry.update(gold.pk, {"order": 9, "slots_filled": 3})
        gold.refresh_from_db()
        assert gold.order == 9
        assert gold.slots_filled == 0

    def test_cannot_shrink_below_filled(self, gold):
        LevelRegistry.increment(gold.pk)
        LevelRegistry.increment(gold.pk)
        with pytest.raises(ValidationFailed, match="slots_total"):
            LevelRegistry.update(gold.pk, {"slots_total": 1})
        gold.refresh_from_db()
        assert gold.slots_total == 3

    def test_can_make_unlimited(self, gold):
        LevelRegistry.update(gold.pk, {"slots_total": None})
        gold.refresh_from_db()
        assert gold.is_unlimited

    def test_requires_fields(self, gold):
        with pytest.raises(ValidationFailed):
            LevelRegistry.update(gold.pk, {"unknown": 1})

    def test_rejects_blank_name(self, gold):
        with pytest.raises(ValidationFailed):
            LevelRegistry.update(gold.pk, {"name": ""})

    def test_unknown_level(self):
        with pytest.raises(NotFound):
            LevelRegistry.update(999999, {"name": "Gold"})


@pytest.mark.django_db
class TestDelete:
    def test_deletes_empty_level(self, gold):
        LevelRegistry.delete(gold.pk)
        assert not SponsorshipLevel.objects.filter(pk=gold.pk).exists()

    def test_refuses_level_with_filled_slots(self, gold):
        LevelRegistry.increment(gold.pk)
        with pytest.raises(Conflict, match="linked sponsors"):
            LevelRegistry.delete(gold.pk)
        assert SponsorshipLevel.objects.filter(pk=gold.pk).exists()

    def test_refuses_level_referenced_by_link(self, event, gold):
        sponsor = Sponsor.objects.create(name="Linked Co")
        SponsorEventLink.objects.create(sponsor=sponsor, event=event, level=gold)
        with pytest.raises(Conflict):
            LevelRegistry.delete(gold.pk)

    def test_unknown_level(self):
        with pytest.raises(NotFound):
            LevelRegistry.delete(999999)


# ---- slot accounting ----


@pytest.mark.django_db
class TestSlotAccounting:
    def test_increment_until_full(self, gold):
        results = [LevelRegistry.increment(gold.pk).applied for _ in range(4)]
        assert results == [True, True, True, False]
        gold.refresh_from_db()
        assert gold.slots_filled == 3
        assert LevelRegistry.available_slots(gold.pk) == 0

    def test_refused_increment_is_logged(self, gold, caplog):
        SponsorshipLevel.objects.filter(pk=gold.pk).update(slots_filled=3)
        with caplog.at_level(logging.WARNING, logger="django_sponsorship.sponsors.services.levels"):
            change = LevelRegistry.increment(gold.pk)
        assert change.applied is False
        assert "all slots are full" in caplog.text

    def test_unlimited_level_always_increments(self, event):
        level = SponsorshipLevel.objects.create(event=event, name="Community")
        for _ in range(25):
            assert LevelRegistry.increment(level.pk).applied
        level.refresh_from_db()
        assert level.slots_filled == 25
        assert LevelRegistry.available_slots(level.pk) is None

    def test_decrement_clamps_at_zero(self, gold):
        LevelRegistry.increment(gold.pk)
        assert LevelRegistry.decrement(gold.pk).applied is True
        change = LevelRegistry.decrement(gold.pk)
        assert change.applied is False
        assert change.level.slots_filled == 0

    def test_unknown_level(self):
        with pytest.raises(NotFound):
            LevelRegistry.increment(999999)
        with pytest.raises(NotFound):
            LevelRegistry.available_slots(999999)


# ---- populate_defaults ----


@pytest.mark.django_db
class TestPopulateDefaults:
    def test_creates_default_tiers(self, event):
        levels = LevelRegistry.populate_defaults(event)

        assert [level.name for level in levels] == ["Bronze", "Silver", "Gold"]
        stored = list(LevelRegistry.list_for_event(event))
        assert [(level.slug, level.slots_total, level.slots_filled) for level in stored] == [
            ("bronze", 10, 0),
            ("silver", 5, 0),
            ("gold", 3, 0),
        ]
        assert stored[2].value == Decimal("5000.00")
        assert stored[2].colour == "#FFD700"

    def test_second_call_conflicts(self, event):
        LevelRegistry.populate_defaults(event.pk)
        with pytest.raises(Conflict, match="already exist"):
            LevelRegistry.populate_defaults(event.pk)
        assert SponsorshipLevel.objects.filter(event=event).count() == 3

    def test_conflicts_when_any_level_exists(self, event, gold):
        with pytest.raises(Conflict):
            LevelRegistry.populate_defaults(event)
        assert SponsorshipLevel.objects.filter(event=event).count() == 1

    def test_uses_configured_defaults(self, event):
        custom = [{"name": "Friend", "slots_total": None, "order": 1}]
        with override_settings(DJANGO_SPONSORSHIP={"default_levels": custom}):
            levels = LevelRegistry.populate_defaults(event)
        assert [(level.name, level.slots_total) for level in levels] == [("Friend", None)]

    def test_requires_levels_enabled(self, flat_event):
        with pytest.raises(ValidationFailed):
            LevelRegistry.populate_defaults(flat_event)
        assert not SponsorshipLevel.objects.filter(event=flat_event).exists()

    def test_unknown_event(self):
        with pytest.raises(NotFound):
            LevelRegistry.populate_defaults(999999)


# ---- lookups ----


@pytest.mark.django_db
class TestLookups:
    def test_list_for_event_in_display_order(self, event, gold):
        bronze = SponsorshipLevel.objects.create(event=event, name="Bronze", order=1)
        assert list(LevelRegistry.list_for_event(event)) == [bronze, gold]

    def test_get_unknown(self):
        with pytest.raises(NotFound):
            LevelRegistry.get(999999)

    def test_match_label(self, event, gold):
        assert LevelRegistry.match_label(event, str(gold.pk)) == gold
        assert LevelRegistry.match_label(event, "gold") == gold
        assert LevelRegistry.match_label(event, "  GOLD ") == gold
        assert LevelRegistry.match_label(event, "Diamond") is None
        assert LevelRegistry.match_label(event, "") is None

    def test_match_label_skips_disabled_levels(self, event, gold):
        gold.enabled = False
        gold.save()
        assert LevelRegistry.match_label(event, "Gold") is None

    def test_match_label_stays_within_event(self, event, flat_event, gold):
        assert LevelRegistry.match_label(flat_event, "gold") is None


# ---- concurrent slot claims ----


@pytest.mark.django_db(transaction=True)
class TestConcurrentIncrement:
    def test_two_callers_race_for_last_slot(self, event, run_concurrently):
        level = SponsorshipLevel.objects.create(event=event, name="Title", slots_total=1)

        results = run_concurrently(
            lambda: LevelRegistry.increment(level.pk),
            lambda: LevelRegistry.increment(level.pk),
        )

        assert all(isinstance(result, SlotChange) for result in results), results
        assert sorted(result.applied for result in results) == [False, True]
        level.refresh_from_db()
        assert level.slots_filled == 1

    def test_many_callers_never_overfill(self, event, run_concurrently):
        level = SponsorshipLevel.objects.create(event=event, name="Gold", slots_total=3)

        results = run_concurrently(*[lambda: LevelRegistry.increment(level.pk) for _ in range(6)])

        assert all(isinstance(result, SlotChange) for result in results), results
        assert sum(result.applied for result in results) == 3
        level.refresh_from_db()
        assert level.slots_filled == 3
