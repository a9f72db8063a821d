from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from appsettings.forms import SettingAdminForm
from appsettings.models import Setting

User = get_user_model()


class SettingLookupTests(TestCase):
    def test_seeded_stripe_pointers(self):
        self.assertTrue(Setting.objects.filter(group="stripe", key="product", is_visible=True).exists())
        self.assertTrue(Setting.objects.filter(group="stripe", key="price", is_visible=False).exists())

    def test_get_value(self):
        Setting.set_value("stripe", "price", "price_123")

        self.assertEqual(Setting.get_value("stripe", "price"), "price_123")
        self.assertEqual(Setting.stripe_price_id(), "price_123")

    def test_get_value_default(self):
        self.assertEqual(Setting.get_value("missing", "key", "fallback"), "fallback")
        with self.assertRaises(Setting.DoesNotExist):
            Setting.get_value("missing", "key")


class SettingFormTests(TestCase):
    def form(self, **data):
        payload = {"group": "certificate", "key": "percentage", "name": "Pass mark", "value": "80", "is_visible": True}
        payload.update(data)
        return SettingAdminForm(data=payload)

    def test_percentage_in_range(self):
        self.assertTrue(self.form().is_valid())

    def test_percentage_out_of_range(self):
        form = self.form(value="120")
        self.assertFalse(form.is_valid())
        self.assertIn("value", form.errors)

    def test_percentage_must_be_numeric(self):
        form = self.form(value="eighty")
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors["value"], ["Enter a number."])

    def test_other_settings_take_free_text(self):
        self.assertTrue(self.form(group="site", key="motto", value="Learn daily").is_valid())

    def test_value_required(self):
        form = self.form(group="site", key="motto", value="")
        self.assertFalse(form.is_valid())


class SettingAdminTests(TestCase):
    def setUp(self):
        self.admin_user = User.objects.create_superuser(
            username="root@example.com", email="root@example.com", password="p@ssw0rd!123"
        )
        self.client.force_login(self.admin_user)

    def test_changelist_lists_visible_settings_only(self):
        resp = self.client.get(reverse("admin:appsettings_setting_changelist"))

        keys = {(s.group, s.key) for s in resp.context["cl"].result_list}
        self.assertIn(("stripe", "product"), keys)
        self.assertNotIn(("stripe", "price"), keys)

    def test_invisible_setting_cannot_be_opened(self):
        hidden = Setting.get_data("stripe", "price")

        resp = self.client.get(reverse("admin:appsettings_setting_change", args=[hidden.pk]))

        # The admin redirects to the index with a "doesn't exist" message
        self.assertEqual(resp.status_code, 302)

    def test_settings_cannot_be_deleted(self):
        setting = Setting.get_data("stripe", "product")

        resp = self.client.get(reverse("admin:appsettings_setting_delete", args=[setting.pk]))

        self.assertEqual(resp.status_code, 403)
