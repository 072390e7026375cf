from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(max_length=200, unique=True)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("venue", models.CharField(blank=True, default="", max_length=300)),
                ("website_url", models.URLField(blank=True, default="")),
                (
                    "sponsorship_enabled",
                    models.BooleanField(
                        default=False,
                        help_text="Accept expressions of interest and sponsor links for this event.",
                    ),
                ),
                (
                    "sponsorship_levels_enabled",
                    models.BooleanField(
                        default=False,
                        help_text="Use sponsorship tiers with slot capacity for this event.",
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-start_date"],
            },
        ),
    ]
