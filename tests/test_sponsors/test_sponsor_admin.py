"""Tests for the sponsorship admin registrations."""

from datetime import date

import pytest
from django.contrib.auth.models import User
from django.test import Client
from django.urls import reverse

from django_sponsorship.events.models import Event
from django_sponsorship.sponsors.models import ExpressionOfInterest, Sponsor, SponsorEventLink, SponsorshipLevel


@pytest.fixture
def superuser(db):
    return User.objects.create_superuser(username="admin", password="password", email="admin@test.com")


@pytest.fixture
def authed_client(client: Client, superuser):
    client.force_login(superuser)
    return client


@pytest.fixture
def link(db):
    event = Event.objects.create(
        name="Admin Event",
        slug="admin-event",
        start_date=date(2026, 8, 26),
        end_date=date(2026, 8, 30),
        sponsorship_enabled=True,
        sponsorship_levels_enabled=True,
    )
    sponsor = Sponsor.objects.create(name="Admin Sponsor")
    level = SponsorshipLevel.objects.create(event=event, name="Gold", slots_total=3, slots_filled=1)
    ExpressionOfInterest.objects.create(sponsor=sponsor, event=event, status="approved", level=level)
    return SponsorEventLink.objects.create(sponsor=sponsor, event=event, level=level)


@pytest.mark.django_db
@pytest.mark.parametrize(
    "model_name",
    ["sponsor", "sponsorshiplevel", "expressionofinterest", "sponsoreventlink"],
)
def test_changelist_renders(authed_client, link, model_name):
    response = authed_client.get(reverse(f"admin:sponsorship_sponsors_{model_name}_changelist"))
    assert response.status_code == 200


@pytest.mark.django_db
def test_event_changelist_renders(authed_client, link):
    response = authed_client.get(reverse("admin:sponsorship_events_event_changelist"))
    assert response.status_code == 200


@pytest.mark.django_db
def test_level_change_form_shows_filled_slots_read_only(authed_client, link):
    response = authed_client.get(reverse("admin:sponsorship_sponsors_sponsorshiplevel_change", args=[link.level_id]))
    assert response.status_code == 200
    assert 'name="slots_filled"' not in response.content.decode()


@pytest.mark.django_db
def test_links_cannot_be_added_in_admin(authed_client):
    response = authed_client.get(reverse("admin:sponsorship_sponsors_sponsoreventlink_add"))
    assert response.status_code == 403


@pytest.mark.django_db
def test_deleting_link_in_admin_releases_slot(authed_client, link):
    response = authed_client.post(
        reverse("admin:sponsorship_sponsors_sponsoreventlink_delete", args=[link.pk]),
        {"post": "yes"},
    )
    assert response.status_code == 302
    assert not SponsorEventLink.objects.filter(pk=link.pk).exists()
    link.level.refresh_from_db()
    assert link.level.slots_filled == 0


@pytest.mark.django_db
def test_bulk_deleting_links_in_admin_releases_slots(authed_client, link):
    other = SponsorEventLink.objects.create(
        sponsor=Sponsor.objects.create(name="Second Sponsor"),
        event=link.event,
        level=link.level,
    )
    SponsorshipLevel.objects.filter(pk=link.level_id).update(slots_filled=2)

    response = authed_client.post(
        reverse("admin:sponsorship_sponsors_sponsoreventlink_changelist"),
        {"action": "delete_selected", "_selected_action": [link.pk, other.pk], "post": "yes"},
    )
    assert response.status_code == 302
    assert SponsorEventLink.objects.count() == 0
    link.level.refresh_from_db()
    assert link.level.slots_filled == 0


@pytest.mark.django_db
def test_linked_sponsor_delete_is_refused_in_admin(authed_client, link):
    response = authed_client.post(
        reverse("admin:sponsorship_sponsors_sponsor_delete", args=[link.sponsor_id]),
        {"post": "yes"},
    )
    assert response.status_code == 200
    assert Sponsor.objects.filter(pk=link.sponsor_id).exists()
    link.level.refresh_from_db()
    assert link.level.slots_filled == 1
