from django.contrib.admin.sites import AdminSite
from django.test import RequestFactory, TestCase

from accounts.admin import StaffUserCreationForm, UserAdmin
from accounts.models import User


class UserManagerTests(TestCase):
    def test_create_user_normalises_email(self):
        user = User.objects.create_user(email="Secretario@Example.COM", password="x")
        self.assertEqual(user.email, "secretario@example.com")
        self.assertFalse(user.is_staff)
        self.assertEqual(user.role, User.ROLE_PUBLISHER)

    def test_create_superuser_is_admin(self):
        user = User.objects.create_superuser(email="admin@example.com", password="x")
        self.assertTrue(user.is_superuser)
        self.assertEqual(user.role, User.ROLE_ADMIN)
        self.assertTrue(user.can_manage)

    def test_email_is_required(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email="", password="x")


class PermissionTests(TestCase):
    def test_roles(self):
        overseer = User(email="s@example.com", role=User.ROLE_OVERSEER)
        self.assertFalse(overseer.can_manage)
        self.assertTrue(overseer.can_review_applications)

        helper = User(email="h@example.com", role=User.ROLE_HELPER)
        self.assertFalse(helper.can_review_applications)

        elder = User(email="a@example.com", role=User.ROLE_PUBLISHER, is_committee_member=True)
        self.assertTrue(elder.can_manage)


class StaffUserCreationFormTests(TestCase):
    def _data(self, **overrides):
        data = {
            "email": " Ayudante@Example.com ",
            "full_name": "Ayudante",
            "role": User.ROLE_HELPER,
            "password1": "informes-mensuales-2024",
            "password2": "informes-mensuales-2024",
        }
        data.update(overrides)
        return data

    def test_staff_role_gets_admin_access(self):
        form = StaffUserCreationForm(data=self._data())
        self.assertTrue(form.is_valid(), form.errors)
        user = form.save()
        self.assertEqual(user.email, "ayudante@example.com")
        self.assertTrue(user.is_staff)
        self.assertTrue(user.check_password("informes-mensuales-2024"))

    def test_publisher_role_is_not_staff(self):
        form = StaffUserCreationForm(data=self._data(role=User.ROLE_PUBLISHER))
        self.assertTrue(form.is_valid(), form.errors)
        self.assertFalse(form.save().is_staff)

    def test_duplicate_email_and_password_mismatch(self):
        User.objects.create_user(email="ayudante@example.com", password="x")
        form = StaffUserCreationForm(data=self._data(password2="otra-clave-distinta-99"))
        self.assertFalse(form.is_valid())
        self.assertIn("email", form.errors)
        self.assertIn("password2", form.errors)


class CommitteeActionTests(TestCase):
    def test_add_and_remove_from_committee(self):
        admin_user = User.objects.create_superuser(email="admin@example.com", password="x")
        elder = User.objects.create_user(email="anciano@example.com", password="x")
        model_admin = UserAdmin(User, AdminSite())
        request = RequestFactory().post("/")
        request.user = admin_user
        model_admin.message_user = lambda *args, **kwargs: None

        model_admin.add_to_committee(request, User.objects.filter(pk=elder.pk))
        elder.refresh_from_db()
        self.assertTrue(elder.is_committee_member)
        self.assertTrue(elder.is_staff)

        model_admin.remove_from_committee(request, User.objects.filter(pk=elder.pk))
        elder.refresh_from_db()
        self.assertFalse(elder.is_committee_member)
