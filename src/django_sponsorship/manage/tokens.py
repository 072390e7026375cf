"""Anti-forgery tokens for the sponsorship management API.

Each family of actions (``eoi``, ``level``, ``link``, ``sponsor``) has its
own signing salt, so a token issued for level edits cannot be replayed
against the EOI review endpoints.  Tokens are bound to the user that
requested them and expire after ``action_token_max_age`` seconds.
"""

from django.contrib.auth.models import AbstractBaseUser, AnonymousUser
from django.core.signing import BadSignature, TimestampSigner

from django_sponsorship.settings import get_config

ACTION_FAMILIES: tuple[str, ...] = ("eoi", "level", "link", "sponsor")


def _signer(family: str) -> TimestampSigner:
    if family not in ACTION_FAMILIES:
        msg = f"Unknown action family: {family!r}"
        raise ValueError(msg)
    return TimestampSigner(salt=f"django_sponsorship.manage.{family}")


def make_action_token(user: AbstractBaseUser, family: str) -> str:
    """Issue a token that authorizes *user* to call *family* endpoints.

    Raises:
        ValueError: If *family* is not one of ``ACTION_FAMILIES``.
    """
    return _signer(family).sign(str(user.pk))


def check_action_token(user: AbstractBaseUser | AnonymousUser, family: str, token: str) -> bool:
    """Return True when *token* was issued to *user* for *family* and has not expired."""
    if not token or not user.is_authenticated:
        return False
    try:
        value = _signer(family).unsign(token, max_age=get_config().action_token_max_age)
    except BadSignature:
        return False
    return value == str(user.pk)
