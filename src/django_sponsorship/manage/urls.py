"""URL configuration for the sponsorship management API.

Mount under a prefix in the host project::

    urlpatterns = [
        path("sponsorship/", include("django_sponsorship.manage.urls")),
    ]
"""

from django.urls import path

from django_sponsorship.manage.views import (
    ActionTokenView,
    EOIApproveView,
    EOIBulkApplyView,
    EOIRejectView,
    EOIRequestInfoView,
    LevelDeleteView,
    LevelPopulateDefaultsView,
    LevelSaveView,
    LinkChangeLevelView,
    LinkCreateView,
    LinkListView,
    LinkRemoveView,
    SponsorSearchView,
)

app_name = "sponsorship_manage"

urlpatterns = [
    path("tokens/", ActionTokenView.as_view(), name="action-tokens"),
    path("eoi/approve/", EOIApproveView.as_view(), name="eoi-approve"),
    path("eoi/reject/", EOIRejectView.as_view(), name="eoi-reject"),
    path("eoi/request-info/", EOIRequestInfoView.as_view(), name="eoi-request-info"),
    path("eoi/bulk/", EOIBulkApplyView.as_view(), name="eoi-bulk-apply"),
    path("levels/save/", LevelSaveView.as_view(), name="level-save"),
    path("levels/populate-defaults/", LevelPopulateDefaultsView.as_view(), name="level-populate-defaults"),
    path("levels/delete/", LevelDeleteView.as_view(), name="level-delete"),
    path("links/", LinkListView.as_view(), name="link-list"),
    path("links/create/", LinkCreateView.as_view(), name="link-create"),
    path("links/remove/", LinkRemoveView.as_view(), name="link-remove"),
    path("links/change-level/", LinkChangeLevelView.as_view(), name="link-change-level"),
    path("sponsors/search/", SponsorSearchView.as_view(), name="sponsor-search"),
]
