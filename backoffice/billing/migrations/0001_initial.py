import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Transaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("subscription_id", models.CharField(max_length=255)),
                ("price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("credit_card", models.CharField(blank=True, default="", max_length=4)),
                (
                    "status",
                    models.CharField(
                        choices=[("successful", "Successful"), ("refunded", "Refunded")],
                        default="successful",
                        max_length=16,
                    ),
                ),
                ("refund_reason", models.CharField(blank=True, default="", max_length=255)),
                ("hosted_invoice_url", models.URLField(blank=True, default="", max_length=500)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="transactions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-id"],
                "permissions": (
                    ("page_subscription", "Can open the subscription page"),
                    ("widget_income_chart", "Can see the income chart widget"),
                ),
            },
        ),
    ]
