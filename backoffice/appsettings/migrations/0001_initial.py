from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Setting",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("group", models.CharField(max_length=50)),
                ("name", models.CharField(blank=True, default="", max_length=50)),
                ("details", models.CharField(blank=True, default="", max_length=255)),
                ("key", models.CharField(max_length=50)),
                ("value", models.TextField(blank=True, default="")),
                (
                    "is_visible",
                    models.BooleanField(
                        default=True,
                        help_text="Invisible settings cannot be viewed or edited from the admin once created.",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["group", "key"],
                "unique_together": {("group", "key")},
            },
        ),
    ]
