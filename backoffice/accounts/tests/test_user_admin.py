from unittest import mock

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.core.files.storage import default_storage
from django.test import TestCase
from django.urls import reverse

from accounts.models import UserProfile, UserStatus
from accounts.roles import UserRole, assign_role, role_of
from accounts.tests.helpers import MediaRootMixin, png
from billing.models import Transaction

User = get_user_model()

PASSWORD = "p@ssw0rd!123"

# The read-only transactions inline is rendered on change screens
TRANSACTIONS_MANAGEMENT = {
    "transactions-TOTAL_FORMS": "0",
    "transactions-INITIAL_FORMS": "0",
    "transactions-MIN_NUM_FORMS": "0",
    "transactions-MAX_NUM_FORMS": "1000",
}


def make_user(email, role=UserRole.CLIENT, **extra):
    user = User.objects.create_user(username=email, email=email, password=PASSWORD, **extra)
    if role:
        assign_role(user, role)
    return user


class UserAdminTests(TestCase):
    def setUp(self):
        self.admin_user = User.objects.create_superuser(
            username="root@example.com", email="root@example.com", password=PASSWORD
        )
        self.client.force_login(self.admin_user)

    def test_changelist_hides_super_admins_and_users_without_role(self):
        make_user("client@example.com")
        make_user("boss@example.com", role=UserRole.SUPER_ADMIN)
        make_user("nobody@example.com", role=None)

        resp = self.client.get(reverse("admin:auth_user_changelist"))

        self.assertEqual(resp.status_code, 200)
        emails = [user.email for user in resp.context["cl"].result_list]
        self.assertEqual(emails, ["client@example.com"])

    @mock.patch("accounts.admin.send_verification_email")
    def test_create_user_assigns_role_and_queues_verification(self, send_email):
        with self.captureOnCommitCallbacks(execute=True):
            resp = self.client.post(reverse("admin:auth_user_add"), {
                "first_name": "Ada",
                "last_name": "Lovelace",
                "email": "ada@example.com",
                "status": UserStatus.ACTIVE,
                "password": "Sup3r-secret",
                "password_confirmation": "Sup3r-secret",
                "role": UserRole.MANAGER,
            })

        user = User.objects.get(email="ada@example.com")
        self.assertRedirects(resp, reverse("admin:auth_user_details", args=[user.pk]), fetch_redirect_response=False)
        self.assertEqual(user.username, "ada@example.com")
        self.assertTrue(user.check_password("Sup3r-secret"))
        self.assertTrue(user.is_staff)
        self.assertEqual(role_of(user), UserRole.MANAGER)
        send_email.delay.assert_called_once_with(user.pk)

    def test_create_user_requires_matching_passwords(self):
        resp = self.client.post(reverse("admin:auth_user_add"), {
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email": "ada@example.com",
            "status": UserStatus.ACTIVE,
            "password": "Sup3r-secret",
            "password_confirmation": "Different-1",
            "role": UserRole.CLIENT,
        })

        self.assertEqual(resp.status_code, 200)
        self.assertIn(
            "The password field confirmation does not match.",
            resp.context["adminform"].form.errors["password"],
        )
        self.assertFalse(User.objects.filter(email="ada@example.com").exists())

    def test_create_user_rejects_taken_email(self):
        make_user("ada@example.com")

        resp = self.client.post(reverse("admin:auth_user_add"), {
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email": "ADA@example.com",
            "status": UserStatus.ACTIVE,
            "password": "Sup3r-secret",
            "password_confirmation": "Sup3r-secret",
            "role": UserRole.CLIENT,
        })

        self.assertEqual(resp.status_code, 200)
        self.assertIn("The email has already been taken.", resp.context["adminform"].form.errors["email"])

    def test_edit_user_keeps_password_when_blank(self):
        user = make_user("client@example.com")

        resp = self.client.post(reverse("admin:auth_user_change", args=[user.pk]), {
            "first_name": "Grace",
            "last_name": "Hopper",
            "email": "client@example.com",
            "status": UserStatus.BANNED,
            "password": "",
            "password_confirmation": "",
            "role": UserRole.CLIENT,
            **TRANSACTIONS_MANAGEMENT,
        })

        self.assertRedirects(resp, reverse("admin:auth_user_details", args=[user.pk]), fetch_redirect_response=False)
        user.refresh_from_db()
        self.assertEqual(user.first_name, "Grace")
        self.assertTrue(user.check_password(PASSWORD))
        self.assertFalse(user.is_active)
        self.assertEqual(user.profile.status, UserStatus.BANNED)

    def test_editing_yourself_is_forbidden(self):
        resp = self.client.get(reverse("admin:auth_user_change", args=[self.admin_user.pk]))
        self.assertEqual(resp.status_code, 403)

    def test_details_screen(self):
        user = make_user("client@example.com")

        resp = self.client.get(reverse("admin:auth_user_details", args=[user.pk]))

        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "client@example.com")
        self.assertTrue(resp.context["can_edit"])
        self.assertTrue(resp.context["can_ban"])
        self.assertFalse(resp.context["can_unban"])

    def test_only_latest_transaction_offers_refund(self):
        user = make_user("client@example.com")
        older = Transaction.objects.create(user=user, subscription_id="sub_1", price="10.00")
        latest = Transaction.objects.create(user=user, subscription_id="sub_2", price="12.00")

        for url in (
            reverse("admin:auth_user_details", args=[user.pk]),
            reverse("admin:auth_user_change", args=[user.pk]),
        ):
            resp = self.client.get(url)
            self.assertEqual(resp.status_code, 200)
            self.assertContains(resp, reverse("admin:billing_transaction_refund", args=[latest.pk]))
            self.assertNotContains(resp, reverse("admin:billing_transaction_refund", args=[older.pk]))

    def test_ban_asks_for_confirmation(self):
        user = make_user("client@example.com")

        resp = self.client.get(reverse("admin:auth_user_ban", args=[user.pk]))

        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Are you sure you want to BAN this user?")
        user.refresh_from_db()
        self.assertTrue(user.is_active)

    def test_ban_and_unban(self):
        user = make_user("client@example.com")

        resp = self.client.post(reverse("admin:auth_user_ban", args=[user.pk]))
        self.assertRedirects(resp, reverse("admin:auth_user_changelist"), fetch_redirect_response=False)
        user.refresh_from_db()
        self.assertEqual(user.profile.status, UserStatus.BANNED)
        self.assertFalse(user.is_active)

        resp = self.client.post(reverse("admin:auth_user_unban", args=[user.pk]))
        self.assertEqual(resp.status_code, 302)
        user.refresh_from_db()
        self.assertEqual(user.profile.status, UserStatus.ACTIVE)
        self.assertTrue(user.is_active)

    def test_banning_a_banned_user_is_forbidden(self):
        user = make_user("client@example.com")
        user.profile.set_status(UserStatus.BANNED)

        resp = self.client.post(reverse("admin:auth_user_ban", args=[user.pk]))

        self.assertEqual(resp.status_code, 403)

    def test_super_admins_cannot_be_banned(self):
        boss = make_user("boss@example.com", role=UserRole.SUPER_ADMIN)

        resp = self.client.post(reverse("admin:auth_user_ban", args=[boss.pk]))

        self.assertEqual(resp.status_code, 404)
        boss.refresh_from_db()
        self.assertTrue(boss.is_active)


class UserAvatarTests(MediaRootMixin, TestCase):
    def setUp(self):
        super().setUp()
        admin_user = User.objects.create_superuser(
            username="root@example.com", email="root@example.com", password=PASSWORD
        )
        self.client.force_login(admin_user)
        self.user = make_user("client@example.com")
        self.url = reverse("admin:auth_user_change", args=[self.user.pk])

    def post(self, **extra):
        data = {
            "first_name": "Grace",
            "last_name": "Hopper",
            "email": "client@example.com",
            "status": UserStatus.ACTIVE,
            "role": UserRole.CLIENT,
            **TRANSACTIONS_MANAGEMENT,
        }
        data.update(extra)
        resp = self.client.post(self.url, data)
        self.assertEqual(resp.status_code, 302)
        return UserProfile.objects.get(user=self.user)

    def test_edit_uploads_avatar(self):
        profile = self.post(avatar=png())

        self.assertTrue(profile.avatar.name.startswith(f"avatars/{self.user.pk}/"))
        self.assertTrue(default_storage.exists(profile.avatar.name))

    def test_edit_clears_avatar(self):
        name = self.post(avatar=png()).avatar.name

        profile = self.post(**{"avatar-clear": "on"})

        self.assertFalse(profile.avatar)
        self.assertFalse(default_storage.exists(name))


class UserSoftDeleteTests(TestCase):
    def setUp(self):
        self.admin_user = User.objects.create_superuser(
            username="root@example.com", email="root@example.com", password=PASSWORD
        )
        self.client.force_login(self.admin_user)
        self.user = make_user("client@example.com")
        self.changelist = reverse("admin:auth_user_changelist")

    def listed(self, query=""):
        resp = self.client.get(self.changelist + query)
        self.assertEqual(resp.status_code, 200)
        return [user.email for user in resp.context["cl"].result_list]

    def test_delete_keeps_the_row_and_blocks_sign_in(self):
        resp = self.client.post(reverse("admin:auth_user_delete", args=[self.user.pk]), {"post": "yes"})

        self.assertEqual(resp.status_code, 302)
        self.user.refresh_from_db()
        self.assertTrue(UserProfile.objects.get(user=self.user).is_trashed)
        self.assertFalse(self.user.is_active)

    def test_deleted_users_are_hidden_unless_filtered(self):
        make_user("other@example.com")
        self.user.profile.trash()

        self.assertEqual(self.listed(), ["other@example.com"])
        self.assertEqual(self.listed("?trashed=only"), ["client@example.com"])
        self.assertEqual(sorted(self.listed("?trashed=with")), ["client@example.com", "other@example.com"])

    def test_restore_action(self):
        self.user.profile.trash()

        resp = self.client.post(self.changelist + "?trashed=only", {
            "action": "restore_users",
            "_selected_action": [self.user.pk],
        })

        self.assertEqual(resp.status_code, 302)
        self.user.refresh_from_db()
        self.assertFalse(UserProfile.objects.get(user=self.user).is_trashed)
        self.assertTrue(self.user.is_active)

    def test_restore_keeps_ban(self):
        self.user.profile.set_status(UserStatus.BANNED)
        self.user.profile.trash()

        self.user.profile.restore()

        self.user.refresh_from_db()
        self.assertFalse(self.user.is_active)

    def test_unban_does_not_revive_deleted_user(self):
        self.user.profile.set_status(UserStatus.BANNED)
        self.user.profile.trash()

        self.user.profile.set_status(UserStatus.ACTIVE)

        self.user.refresh_from_db()
        self.assertFalse(self.user.is_active)

    def test_cannot_delete_yourself(self):
        manager = make_user("manager@example.com", role=UserRole.MANAGER, is_staff=True)
        manager.user_permissions.add(*Permission.objects.filter(codename__in=["view_user", "delete_user"]))
        self.client.force_login(manager)

        resp = self.client.get(reverse("admin:auth_user_delete", args=[manager.pk]))

        self.assertEqual(resp.status_code, 403)
