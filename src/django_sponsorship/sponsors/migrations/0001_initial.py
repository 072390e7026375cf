import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("sponsorship_events", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Sponsor",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(blank=True, max_length=200, unique=True)),
                ("website_url", models.URLField(blank=True, default="")),
                ("description", models.TextField(blank=True, default="")),
                ("contact_name", models.CharField(blank=True, default="", max_length=200)),
                ("contact_email", models.EmailField(blank=True, default="", max_length=254)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="SponsorshipLevel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(blank=True, max_length=200)),
                (
                    "colour",
                    models.CharField(
                        default="#CD7F32",
                        help_text="Hex colour used when displaying the tier.",
                        max_length=7,
                        validators=[
                            django.core.validators.RegexValidator(
                                "^#[0-9A-Fa-f]{6}$", "Enter a hex colour such as #CD7F32."
                            )
                        ],
                    ),
                ),
                ("value", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                (
                    "slots_total",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Number of sponsors this tier can hold. Leave blank for unlimited.",
                        null=True,
                    ),
                ),
                ("slots_filled", models.PositiveIntegerField(default=0, editable=False)),
                ("recognition_text", models.TextField(blank=True, default="")),
                ("order", models.PositiveIntegerField(default=0)),
                ("enabled", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sponsorship_levels",
                        to="sponsorship_events.event",
                    ),
                ),
            ],
            options={
                "ordering": ["order", "pk"],
                "permissions": [("manage_sponsorship", "Can manage event sponsorship")],
                "unique_together": {("event", "slug")},
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("slots_total__isnull", True))
                        | models.Q(("slots_filled__lte", models.F("slots_total"))),
                        name="sponsorship_level_slots_within_total",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="ExpressionOfInterest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                            ("rejected", "Rejected"),
                            ("info_requested", "Info requested"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "preferred_level",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Level requested by the sponsor, as typed on the form.",
                        max_length=100,
                    ),
                ),
                ("disclosures", models.JSONField(blank=True, default=dict)),
                ("submitted_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("review_notes", models.TextField(blank=True, default="")),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="expressions_of_interest",
                        to="sponsorship_events.event",
                    ),
                ),
                (
                    "level",
                    models.ForeignKey(
                        blank=True,
                        help_text="Level assigned when the expression of interest was approved.",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="expressions_of_interest",
                        to="sponsorship_sponsors.sponsorshiplevel",
                    ),
                ),
                (
                    "reviewed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reviewed_expressions_of_interest",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "sponsor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="expressions_of_interest",
                        to="sponsorship_sponsors.sponsor",
                    ),
                ),
            ],
            options={
                "verbose_name": "expression of interest",
                "verbose_name_plural": "expressions of interest",
                "ordering": ["-submitted_at"],
                "constraints": [
                    models.UniqueConstraint(fields=("sponsor", "event"), name="unique_eoi_per_sponsor_event")
                ],
            },
        ),
        migrations.CreateModel(
            name="SponsorEventLink",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("linked_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sponsor_links",
                        to="sponsorship_events.event",
                    ),
                ),
                (
                    "level",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.RESTRICT,
                        related_name="links",
                        to="sponsorship_sponsors.sponsorshiplevel",
                    ),
                ),
                (
                    "sponsor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="event_links",
                        to="sponsorship_sponsors.sponsor",
                    ),
                ),
            ],
            options={
                "ordering": ["linked_at", "pk"],
                "constraints": [
                    models.UniqueConstraint(fields=("sponsor", "event"), name="unique_link_per_sponsor_event")
                ],
            },
        ),
    ]
