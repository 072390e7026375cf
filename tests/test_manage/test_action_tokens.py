"""Tests for management API action tokens."""

import time
from unittest.mock import patch

import pytest
from django.contrib.auth.models import AnonymousUser, User
from django.test import override_settings

from django_sponsorship.manage.tokens import ACTION_FAMILIES, check_action_token, make_action_token


@pytest.fixture
def user():
    return User(pk=7, username="organizer")


@pytest.fixture
def other_user():
    return User(pk=8, username="someone-else")


def test_token_round_trip_for_every_family(user):
    for family in ACTION_FAMILIES:
        assert check_action_token(user, family, make_action_token(user, family))


def test_token_is_bound_to_family(user):
    token = make_action_token(user, "level")
    assert not check_action_token(user, "eoi", token)


def test_token_is_bound_to_user(user, other_user):
    token = make_action_token(user, "eoi")
    assert not check_action_token(other_user, "eoi", token)


def test_tampered_or_missing_token(user):
    token = make_action_token(user, "eoi")
    assert not check_action_token(user, "eoi", token[:-1] + ("A" if token[-1] != "A" else "B"))
    assert not check_action_token(user, "eoi", "")


def test_anonymous_user_never_passes(user):
    token = make_action_token(user, "eoi")
    assert not check_action_token(AnonymousUser(), "eoi", token)


@override_settings(DJANGO_SPONSORSHIP={"action_token_max_age": 60})
def test_token_expires(user):
    token = make_action_token(user, "link")
    assert check_action_token(user, "link", token)
    with patch("django.core.signing.time.time", return_value=time.time() + 120):
        assert not check_action_token(user, "link", token)


def test_unknown_family(user):
    with pytest.raises(ValueError, match="Unknown action family"):
        make_action_token(user, "payments")
