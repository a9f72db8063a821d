import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import accounts.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="UserProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("banned", "Banned")], default="active", max_length=16
                    ),
                ),
                (
                    "avatar",
                    models.ImageField(blank=True, null=True, upload_to=accounts.models.avatar_upload_to),
                ),
                ("email_verified_at", models.DateTimeField(blank=True, null=True)),
                ("stripe_customer_id", models.CharField(blank=True, default="", max_length=255)),
                ("subscription_id", models.CharField(blank=True, default="", max_length=255)),
                (
                    "subscription_status",
                    models.CharField(
                        blank=True,
                        choices=[("active", "Active"), ("canceled", "Canceled"), ("ended", "Ended")],
                        max_length=16,
                        null=True,
                    ),
                ),
                ("subscription_ends_at", models.DateTimeField(blank=True, null=True)),
                ("subscription_bills_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "permissions": (
                    ("page_profile", "Can open the profile page"),
                    ("widget_stats_overview", "Can see the stats overview widget"),
                    ("widget_user_chart", "Can see the user chart widget"),
                ),
            },
        ),
    ]
