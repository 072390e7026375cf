"""JSON endpoints for managing event sponsorship.

Every endpoint answers with the same envelope::

    {"success": true, "data": {...}}
    {"success": false, "error": {"code": "conflict", "message": "..."}}

Callers must be superusers or hold ``sponsorship_sponsors.manage_sponsorship``
and send an action token for the endpoint's family (see
:mod:`django_sponsorship.manage.tokens`) either as the ``token`` parameter
or in the ``X-Sponsorship-Token`` header.  Tokens are issued by
``ActionTokenView``.
"""

import logging
from collections.abc import Mapping

from django.contrib.auth.models import AbstractBaseUser, AnonymousUser
from django.db import DatabaseError
from django.db.models import Q
from django.forms.models import model_to_dict
from django.http import Http404, HttpRequest, HttpResponse, JsonResponse, QueryDict
from django.views import View

from django_sponsorship.features import FeatureRequiredMixin
from django_sponsorship.manage.forms import SponsorshipLevelForm
from django_sponsorship.manage.tokens import ACTION_FAMILIES, check_action_token, make_action_token
from django_sponsorship.settings import get_config
from django_sponsorship.sponsors.exceptions import (
    NotFound,
    PersistenceFailure,
    SponsorshipError,
    Unauthorized,
    ValidationFailed,
)
from django_sponsorship.sponsors.models import ExpressionOfInterest, Sponsor, SponsorEventLink, SponsorshipLevel
from django_sponsorship.sponsors.services.bulk import bulk_apply
from django_sponsorship.sponsors.services.eoi import EOIService
from django_sponsorship.sponsors.services.levels import LevelRegistry
from django_sponsorship.sponsors.services.linkage import LinkageLedger, LinkageService

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Sponsorship-Token"

_LOGGED_PARAMS = ("eoi_id", "eoi_ids", "level_id", "event_id", "sponsor_id", "action")


def has_manage_permission(user: AbstractBaseUser | AnonymousUser) -> bool:
    """Return True when *user* may call the sponsorship management API."""
    if not user.is_authenticated:
        return False
    return user.is_superuser or user.has_perm("sponsorship_sponsors.manage_sponsorship")


def success_response(data: Mapping[str, object], status: int = 200) -> JsonResponse:
    """Wrap *data* in a success envelope."""
    return JsonResponse({"success": True, "data": dict(data)}, status=status)


def error_response(error: SponsorshipError) -> JsonResponse:
    """Wrap a domain error in a failure envelope with its HTTP status."""
    return JsonResponse({"success": False, "error": error.as_dict()}, status=error.http_status)


def serialize_level(level: SponsorshipLevel | None) -> dict[str, object] | None:
    """Return the API representation of a level."""
    if level is None:
        return None
    return {
        "id": level.pk,
        "event_id": level.event_id,
        "name": level.name,
        "slug": level.slug,
        "colour": level.colour,
        "value": str(level.value) if level.value is not None else None,
        "slots_total": level.slots_total,
        "slots_filled": level.slots_filled,
        "available_slots": level.available_slots,
        "recognition_text": level.recognition_text,
        "order": level.order,
        "enabled": level.enabled,
    }


def serialize_eoi(eoi: ExpressionOfInterest) -> dict[str, object]:
    """Return the API representation of an expression of interest."""
    return {
        "id": eoi.pk,
        "sponsor_id": eoi.sponsor_id,
        "event_id": eoi.event_id,
        "status": eoi.status,
        "preferred_level": eoi.preferred_level,
        "level_id": eoi.level_id,
        "reviewed_at": eoi.reviewed_at.isoformat() if eoi.reviewed_at else None,
        "review_notes": eoi.review_notes,
    }


def serialize_link(link: SponsorEventLink) -> dict[str, object]:
    """Return the API representation of a sponsor/event link."""
    return {
        "sponsor_id": link.sponsor_id,
        "sponsor_name": link.sponsor.name,
        "event_id": link.event_id,
        "level": serialize_level(link.level),
        "linked_at": link.linked_at.isoformat(),
    }


def _int_param(params: QueryDict, name: str, *, required: bool = True) -> int | None:
    """Read a positive integer id from the request parameters.

    A missing, empty, or ``"0"`` value counts as absent.

    Raises:
        ValidationFailed: If the value is absent and *required*, or is not
            a positive integer.
    """
    raw = (params.get(name) or "").strip()
    if not raw or raw == "0":
        if required:
            raise ValidationFailed(f"{name} is required.", parameter=name)
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValidationFailed(f"{name} must be a positive integer.", parameter=name) from None
    if value < 0:
        raise ValidationFailed(f"{name} must be a positive integer.", parameter=name)
    return value


class SponsorshipActionView(FeatureRequiredMixin, View):
    """Base class for the sponsorship management endpoints.

    Checks, in order: HTTP method, permission, action token, and feature
    toggles.  Domain errors raised by the handler become failure envelopes;
    database errors are logged with the request ids and reported as
    ``persistence_failure``.

    Subclasses set ``action_family`` to the token family they accept and
    ``operation`` to the name used in logs.
    """

    http_method_names = ["post"]
    required_feature: str | tuple[str, ...] = "manage_api"
    action_family = ""
    operation = ""
    requires_token = True

    def dispatch(self, request: HttpRequest, *args: str, **kwargs: str) -> HttpResponse:
        """Authorize the call and translate errors into JSON envelopes.

        Args:
            request: The incoming HTTP request.
            *args: Positional arguments from the URL resolver.
            **kwargs: Keyword arguments from the URL pattern.

        Returns:
            The handler's response, or a failure envelope.
        """
        if request.method.lower() not in self.http_method_names:
            return self.http_method_not_allowed(request, *args, **kwargs)
        if not has_manage_permission(request.user):
            return error_response(Unauthorized("You do not have permission to manage sponsorship."))

        params = request.POST if request.method == "POST" else request.GET
        if self.requires_token:
            token = params.get("token") or request.headers.get(TOKEN_HEADER, "")
            if not check_action_token(request.user, self.action_family, token):
                logger.warning("Rejected %s from user #%s: invalid or expired token", self.operation, request.user.pk)
                return error_response(Unauthorized("Invalid or expired security token."))

        try:
            return super().dispatch(request, *args, **kwargs)
        except Http404:
            return error_response(NotFound("This feature is not enabled."))
        except SponsorshipError as exc:
            logger.info("%s refused with %s: %s", self.operation, exc.code, exc.message)
            return error_response(exc)
        except DatabaseError:
            logger.exception("%s failed with a database error %s", self.operation, self._log_context(params))
            return error_response(PersistenceFailure("Database update failed."))

    @staticmethod
    def _log_context(params: QueryDict) -> dict[str, object]:
        return {key: params.getlist(key) for key in _LOGGED_PARAMS if key in params}


class ActionTokenView(SponsorshipActionView):
    """Issue action tokens for every endpoint family to the current user."""

    http_method_names = ["get"]
    operation = "token.issue"
    requires_token = False

    def get(self, request: HttpRequest) -> JsonResponse:
        """Return one token per action family."""
        tokens = {family: make_action_token(request.user, family) for family in ACTION_FAMILIES}
        return success_response({"tokens": tokens, "max_age": get_config().action_token_max_age})


# ---- Expressions of interest ----


class EOIApproveView(SponsorshipActionView):
    """Approve an EOI, optionally at an explicit level (``level_id``)."""

    required_feature = ("manage_api", "eoi")
    action_family = "eoi"
    operation = "eoi.approve"

    def post(self, request: HttpRequest) -> JsonResponse:
        """Approve ``eoi_id``."""
        eoi_id = _int_param(request.POST, "eoi_id")
        level_id = _int_param(request.POST, "level_id", required=False)
        result = EOIService.approve(eoi_id, level_id, reviewer=request.user)
        return success_response(
            {
                "message": "EOI approved successfully." if result.changed else "EOI was already approved.",
                "changed": result.changed,
                "eoi": serialize_eoi(result.eoi),
                "level": serialize_level(result.level),
            }
        )


class EOIRejectView(SponsorshipActionView):
    """Reject an EOI, releasing its slot and link if it was approved."""

    required_feature = ("manage_api", "eoi")
    action_family = "eoi"
    operation = "eoi.reject"

    def post(self, request: HttpRequest) -> JsonResponse:
        """Reject ``eoi_id`` with an optional ``reason``."""
        eoi_id = _int_param(request.POST, "eoi_id")
        result = EOIService.reject(eoi_id, request.POST.get("reason", ""), reviewer=request.user)
        return success_response(
            {
                "message": "EOI rejected." if result.changed else "EOI was already rejected.",
                "changed": result.changed,
                "eoi": serialize_eoi(result.eoi),
            }
        )


class EOIRequestInfoView(SponsorshipActionView):
    """Ask the sponsor behind an EOI for more information."""

    required_feature = ("manage_api", "eoi")
    action_family = "eoi"
    operation = "eoi.requestInfo"

    def post(self, request: HttpRequest) -> JsonResponse:
        """Move ``eoi_id`` to INFO_REQUESTED with the given ``message``."""
        eoi_id = _int_param(request.POST, "eoi_id")
        result = EOIService.request_info(eoi_id, request.POST.get("message", ""), reviewer=request.user)
        return success_response({"message": "Information request recorded.", "eoi": serialize_eoi(result.eoi)})


class EOIBulkApplyView(SponsorshipActionView):
    """Approve or reject many EOIs at once.

    Individual failures are reported per item inside a successful
    envelope; only a malformed batch fails the whole call.
    """

    required_feature = ("manage_api", "eoi")
    action_family = "eoi"
    operation = "eoi.bulkApply"

    def post(self, request: HttpRequest) -> JsonResponse:
        """Apply ``action`` to every id in ``eoi_ids``."""
        eoi_ids = request.POST.getlist("eoi_ids") or request.POST.getlist("eoi_ids[]")
        result = bulk_apply(
            request.POST.get("action", ""),
            eoi_ids,
            reviewer=request.user,
            reason=request.POST.get("reason", ""),
        )
        return success_response(result.as_dict())


# ---- Sponsorship levels ----


class LevelSaveView(SponsorshipActionView):
    """Create a level (``event_id``) or update one (``level_id``).

    On update, fields left out of the request keep their stored values.
    """

    required_feature = ("manage_api", "sponsorship_levels")
    action_family = "level"
    operation = "level.save"

    def post(self, request: HttpRequest) -> JsonResponse:
        """Validate the submitted fields and save the level."""
        level_id = _int_param(request.POST, "level_id", required=False)
        event_id = None if level_id is not None else _int_param(request.POST, "event_id")

        instance = LevelRegistry.get(level_id) if level_id is not None else SponsorshipLevel()
        data = {**model_to_dict(instance, fields=SponsorshipLevelForm._meta.fields), **request.POST.dict()}
        form = SponsorshipLevelForm(data, instance=instance if level_id is not None else None)
        if not form.is_valid():
            errors = {field: list(messages) for field, messages in form.errors.items()}
            message = "; ".join(f"{field}: {' '.join(messages)}" for field, messages in errors.items())
            raise ValidationFailed(message, fields=errors)

        if level_id is None:
            level = LevelRegistry.add(event_id, form.cleaned_data)
            message = "Sponsorship level created."
        else:
            level = LevelRegistry.update(level_id, form.cleaned_data)
            message = "Sponsorship level updated."
        return success_response({"message": message, "created": level_id is None, "level": serialize_level(level)})


class LevelPopulateDefaultsView(SponsorshipActionView):
    """Seed an event that has no levels with the configured default tiers."""

    required_feature = ("manage_api", "sponsorship_levels")
    action_family = "level"
    operation = "level.populateDefaults"

    def post(self, request: HttpRequest) -> JsonResponse:
        """Create the default levels for ``event_id``."""
        levels = LevelRegistry.populate_defaults(_int_param(request.POST, "event_id"))
        return success_response(
            {
                "message": f"{len(levels)} default sponsorship levels created.",
                "levels": [serialize_level(level) for level in levels],
            }
        )


class LevelDeleteView(SponsorshipActionView):
    """Delete a level that no sponsor occupies."""

    required_feature = ("manage_api", "sponsorship_levels")
    action_family = "level"
    operation = "level.delete"

    def post(self, request: HttpRequest) -> JsonResponse:
        """Delete ``level_id``."""
        level_id = _int_param(request.POST, "level_id")
        LevelRegistry.delete(level_id)
        return success_response({"message": "Sponsorship level deleted.", "level_id": level_id})


# ---- Sponsor links ----


class LinkListView(SponsorshipActionView):
    """List the links of an event (``event_id``) or of a sponsor (``sponsor_id``)."""

    http_method_names = ["get"]
    required_feature = ("manage_api", "sponsorship")
    action_family = "link"
    operation = "link.list"

    def get(self, request: HttpRequest) -> JsonResponse:
        """Return the matching links."""
        event_id = _int_param(request.GET, "event_id", required=False)
        if event_id is not None:
            links = LinkageLedger.list_for_event(event_id)
        else:
            sponsor_id = _int_param(request.GET, "sponsor_id", required=False)
            if sponsor_id is None:
                raise ValidationFailed("event_id or sponsor_id is required.")
            links = LinkageLedger.list_for_sponsor(sponsor_id)
        return success_response({"links": [serialize_link(link) for link in links]})


class LinkCreateView(SponsorshipActionView):
    """Link a sponsor to an event directly, optionally at a level."""

    required_feature = ("manage_api", "sponsorship")
    action_family = "link"
    operation = "link.create"

    def post(self, request: HttpRequest) -> JsonResponse:
        """Link ``sponsor_id`` to ``event_id`` at ``level_id``."""
        link = LinkageService.link_sponsor(
            _int_param(request.POST, "sponsor_id"),
            _int_param(request.POST, "event_id"),
            _int_param(request.POST, "level_id", required=False),
        )
        return success_response({"message": "Sponsor linked successfully.", "link": serialize_link(link)})


class LinkRemoveView(SponsorshipActionView):
    """Unlink a sponsor from an event and release its slot."""

    required_feature = ("manage_api", "sponsorship")
    action_family = "link"
    operation = "link.remove"

    def post(self, request: HttpRequest) -> JsonResponse:
        """Unlink ``sponsor_id`` from ``event_id``."""
        released_level_id = LinkageService.unlink_sponsor(
            _int_param(request.POST, "sponsor_id"),
            _int_param(request.POST, "event_id"),
        )
        return success_response({"message": "Sponsor unlinked.", "released_level_id": released_level_id})


class LinkChangeLevelView(SponsorshipActionView):
    """Move a linked sponsor to another level; an empty ``level_id`` clears it."""

    required_feature = ("manage_api", "sponsorship")
    action_family = "link"
    operation = "link.changeLevel"

    def post(self, request: HttpRequest) -> JsonResponse:
        """Change the level of the ``sponsor_id``/``event_id`` link."""
        link = LinkageService.change_level(
            _int_param(request.POST, "sponsor_id"),
            _int_param(request.POST, "event_id"),
            _int_param(request.POST, "level_id", required=False),
        )
        return success_response({"message": "Sponsor level updated.", "link": serialize_link(link)})


# ---- Sponsors ----


class SponsorSearchView(SponsorshipActionView):
    """Autocomplete over active sponsors by name.

    Queries shorter than ``search_min_length`` return an empty list rather
    than an error, so the widget can call on every keystroke.
    """

    http_method_names = ["get", "post"]
    required_feature = ("manage_api", "sponsorship")
    action_family = "sponsor"
    operation = "sponsor.search"

    def get(self, request: HttpRequest) -> JsonResponse:
        """Search with the ``q`` query parameter."""
        return self._search(request.GET.get("q", ""))

    def post(self, request: HttpRequest) -> JsonResponse:
        """Search with the ``q`` form field."""
        return self._search(request.POST.get("q", ""))

    @staticmethod
    def _search(query: str) -> JsonResponse:
        config = get_config()
        query = query.strip()
        if len(query) < config.search_min_length:
            return success_response({"sponsors": []})

        sponsors = (
            Sponsor.objects.filter(is_active=True)
            .filter(Q(name__icontains=query) | Q(slug__icontains=query))
            .order_by("name")[: config.search_limit]
        )
        return success_response(
            {
                "sponsors": [
                    {"id": sponsor.pk, "name": sponsor.name, "slug": sponsor.slug, "website_url": sponsor.website_url}
                    for sponsor in sponsors
                ]
            }
        )
