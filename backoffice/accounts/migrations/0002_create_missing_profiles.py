from django.conf import settings
from django.db import migrations


def create_profiles(apps, schema_editor):
    app_label, model_name = settings.AUTH_USER_MODEL.split(".")
    User = apps.get_model(app_label, model_name)
    UserProfile = apps.get_model("accounts", "UserProfile")
    missing = User.objects.filter(profile__isnull=True)
    UserProfile.objects.bulk_create([UserProfile(user=user) for user in missing])


class Migration(migrations.Migration):

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(create_profiles, migrations.RunPython.noop),
    ]
