from django.contrib.auth import get_user_model
from django.core import mail
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from accounts.tasks import send_verification_email, verification_path

User = get_user_model()


@override_settings(SITE_URL="https://backoffice.example.com")
class VerificationEmailTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="ada@example.com", email="ada@example.com", password="p@ssw0rd!123"
        )

    def test_sends_link(self):
        self.assertTrue(send_verification_email(self.user.pk))

        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, ["ada@example.com"])
        self.assertIn("https://backoffice.example.com/accounts/verify/", message.body)

    def test_skips_verified_users(self):
        self.user.profile.email_verified_at = timezone.now()
        self.user.profile.save()

        self.assertFalse(send_verification_email(self.user.pk))
        self.assertEqual(len(mail.outbox), 0)

    def test_skips_missing_users(self):
        self.assertFalse(send_verification_email(self.user.pk + 100))


class VerifyEmailViewTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="ada@example.com", email="ada@example.com", password="p@ssw0rd!123"
        )

    def test_valid_link_marks_email_verified(self):
        resp = self.client.get(verification_path(self.user))

        self.assertEqual(resp.status_code, 200)
        self.user.profile.refresh_from_db()
        self.assertIsNotNone(self.user.profile.email_verified_at)

    def test_bad_token(self):
        path = verification_path(self.user).rstrip("/").rsplit("/", 1)[0] + "/bad-token/"

        resp = self.client.get(path)

        self.assertEqual(resp.status_code, 400)
        self.user.profile.refresh_from_db()
        self.assertIsNone(self.user.profile.email_verified_at)

    def test_unknown_user(self):
        resp = self.client.get(reverse("accounts:verify-email", kwargs={"uidb64": "MTIzNDU2", "token": "x"}))
        self.assertEqual(resp.status_code, 404)
