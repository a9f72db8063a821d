from django.db import migrations

# Stripe pointers read by the subscription page; values are filled in from the admin
SEED = [
    {
        "group": "stripe",
        "key": "product",
        "name": "Stripe product",
        "details": "Identifier of the Stripe product sold as the yearly subscription.",
        "is_visible": True,
    },
    {
        "group": "stripe",
        "key": "price",
        "name": "Stripe price",
        "details": "Identifier of the active Stripe price. Managed by the subscription page.",
        "is_visible": False,
    },
]


def seed(apps, schema_editor):
    Setting = apps.get_model("appsettings", "Setting")
    for row in SEED:
        values = dict(row)
        Setting.objects.get_or_create(
            group=values.pop("group"), key=values.pop("key"), defaults=values
        )


def unseed(apps, schema_editor):
    Setting = apps.get_model("appsettings", "Setting")
    for row in SEED:
        Setting.objects.filter(group=row["group"], key=row["key"]).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("appsettings", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed, unseed),
    ]
