"""Tests for the populate_sponsorship_levels management command."""

from datetime import date
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from django_sponsorship.events.models import Event
from django_sponsorship.sponsors.models import SponsorshipLevel


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


@pytest.mark.django_db
def test_populates_default_levels(event):
    out = StringIO()
    call_command("populate_sponsorship_levels", "--event", event.slug, stdout=out)

    output = out.getvalue()
    assert "Created 3 sponsorship levels for PyCon AU 2026" in output
    assert "Gold: 3 slots" in output
    assert SponsorshipLevel.objects.filter(event=event).count() == 3


@pytest.mark.django_db
def test_refuses_event_with_levels(event):
    call_command("populate_sponsorship_levels", "--event", event.slug, stdout=StringIO())
    with pytest.raises(CommandError, match="already exist"):
        call_command("populate_sponsorship_levels", "--event", event.slug, stdout=StringIO())
    assert SponsorshipLevel.objects.filter(event=event).count() == 3


@pytest.mark.django_db
def test_unknown_event():
    with pytest.raises(CommandError, match="not found"):
        call_command("populate_sponsorship_levels", "--event", "nope", stdout=StringIO())


@pytest.mark.django_db
def test_event_without_levels_enabled(event):
    event.sponsorship_levels_enabled = False
    event.save()
    with pytest.raises(CommandError, match="not enabled"):
        call_command("populate_sponsorship_levels", "--event", event.slug, stdout=StringIO())
