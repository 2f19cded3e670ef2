import json

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase
from django.urls import reverse

from accounts.validators import PasswordStrengthValidator

User = get_user_model()


class UserManagerTests(TestCase):
    """Tests for the custom UserManager."""

    def test_create_user(self):
        """Test creating a regular user with email."""
        user = User.objects.create_user(
            email='test@example.com',
            password='Testpass123'
        )
        self.assertEqual(user.email, 'test@example.com')
        self.assertTrue(user.check_password('Testpass123'))
        self.assertFalse(user.is_staff)
        self.assertFalse(user.is_superuser)
        self.assertEqual(user.role, User.Role.TEACHER)

    def test_create_user_without_email_raises_error(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email='', password='Testpass123')

    def test_create_user_normalizes_email(self):
        """Test that email is normalized (lowercase domain)."""
        user = User.objects.create_user(email='test@EXAMPLE.COM', password='Testpass123')
        self.assertEqual(user.email, 'test@example.com')

    def test_create_superuser(self):
        user = User.objects.create_superuser(email='admin@example.com', password='Adminpass123')
        self.assertTrue(user.is_staff)
        self.assertTrue(user.is_superuser)
        self.assertEqual(user.role_label, 'Super Admin')

    def test_create_superuser_without_is_staff_raises_error(self):
        with self.assertRaises(ValueError):
            User.objects.create_superuser(email='admin@example.com', password='Adminpass123', is_staff=False)

    def test_role_helpers(self):
        director = User.objects.create_director(email='director@school.com', password='Testpass123')
        head = User.objects.create_headteacher(email='head@school.com', password='Testpass123')
        teacher = User.objects.create_teacher(email='teacher@school.com', password='Testpass123')

        self.assertTrue(director.is_school_admin)
        self.assertTrue(head.is_school_admin)
        self.assertFalse(teacher.is_school_admin)
        self.assertTrue(teacher.is_teacher)
        self.assertEqual(head.role_label, 'Head Teacher')


class PasswordStrengthValidatorTests(TestCase):

    def setUp(self):
        self.validator = PasswordStrengthValidator()

    def assertRejected(self, password, code):
        with self.assertRaises(ValidationError) as ctx:
            self.validator.validate(password)
        self.assertEqual(ctx.exception.code, code)

    def test_valid_password(self):
        self.validator.validate('Classroom42')

    def test_too_short(self):
        self.assertRejected('Ab1', 'password_too_short')

    def test_missing_character_classes(self):
        self.assertRejected('classroom42', 'password_no_upper')
        self.assertRejected('CLASSROOM42', 'password_no_lower')
        self.assertRejected('Classroomxx', 'password_no_digit')

    def test_help_text_mentions_length(self):
        self.assertIn('8 characters', PasswordStrengthValidator().get_help_text())


class AuthViewTests(TestCase):

    def setUp(self):
        self.user = User.objects.create_teacher(
            email='teacher@school.com', password='Testpass123', first_name='Ann', last_name='Nakato'
        )

    def post_json(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type='application/json')

    def test_login_and_me(self):
        response = self.post_json(reverse('accounts:login'), {
            'email': 'teacher@school.com', 'password': 'Testpass123'
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['user']['role'], 'teacher')

        me = self.client.get(reverse('accounts:me'))
        self.assertEqual(me.json()['email'], 'teacher@school.com')
        self.assertIsNone(me.json()['teacher_id'])

    def test_login_with_wrong_password(self):
        response = self.post_json(reverse('accounts:login'), {
            'email': 'teacher@school.com', 'password': 'nope'
        })
        self.assertEqual(response.status_code, 401)

    def test_me_requires_login(self):
        self.assertEqual(self.client.get(reverse('accounts:me')).status_code, 401)

    def test_password_change_clears_flag(self):
        self.user.must_change_password = True
        self.user.save()
        self.client.force_login(self.user)

        response = self.post_json(reverse('accounts:password_change'), {
            'old_password': 'Testpass123',
            'new_password1': 'Blackboard2026',
            'new_password2': 'Blackboard2026',
        })
        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertFalse(self.user.must_change_password)
        self.assertTrue(self.user.check_password('Blackboard2026'))

    def test_password_change_enforces_strength(self):
        self.client.force_login(self.user)
        response = self.post_json(reverse('accounts:password_change'), {
            'old_password': 'Testpass123',
            'new_password1': 'blackboardxyz',
            'new_password2': 'blackboardxyz',
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn('new_password2', response.json()['errors'])


class UserManagementViewTests(TestCase):
    """Admin-only account listing, role changes and suspension."""

    def setUp(self):
        self.admin_user = User.objects.create_director(email='director@school.com', password='Testpass123')
        self.teacher = User.objects.create_teacher(
            email='teacher@school.com', password='Testpass123', first_name='Ann', last_name='Nakato'
        )
        self.bursar = User.objects.create_bursar(email='bursar@school.com', password='Testpass123')
        self.client.force_login(self.admin_user)

    def patch_json(self, url, payload):
        return self.client.patch(url, data=json.dumps(payload), content_type='application/json')

    def test_list_users(self):
        response = self.client.get(reverse('accounts:users'))
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['count'], 3)
        self.assertEqual(
            [u['email'] for u in data['users']],
            ['bursar@school.com', 'director@school.com', 'teacher@school.com']
        )
        self.assertEqual(data['users'][0]['status'], 'ACTIVE')

    def test_list_filters(self):
        self.teacher.is_active = False
        self.teacher.save()

        response = self.client.get(reverse('accounts:users'), {'role': 'bursar'})
        self.assertEqual([u['email'] for u in response.json()['users']], ['bursar@school.com'])

        response = self.client.get(reverse('accounts:users'), {'status': 'suspended'})
        self.assertEqual([u['email'] for u in response.json()['users']], ['teacher@school.com'])

        response = self.client.get(reverse('accounts:users'), {'search': 'nakato'})
        self.assertEqual(response.json()['count'], 1)

        response = self.client.get(reverse('accounts:users'), {'role': 'janitor'})
        self.assertEqual(response.status_code, 400)

    def test_non_admin_forbidden(self):
        self.client.force_login(self.teacher)
        self.assertEqual(self.client.get(reverse('accounts:users')).status_code, 403)
        response = self.client.post(reverse('accounts:user_suspend', args=[self.bursar.pk]))
        self.assertEqual(response.status_code, 403)
        self.client.logout()
        self.assertEqual(self.client.get(reverse('accounts:users')).status_code, 401)

    def test_update_role(self):
        response = self.patch_json(
            reverse('accounts:user_detail', args=[self.teacher.pk]), {'role': 'classteacher'}
        )
        self.assertEqual(response.status_code, 200)
        self.teacher.refresh_from_db()
        self.assertEqual(self.teacher.role, User.Role.CLASS_TEACHER)
        self.assertEqual(self.teacher.first_name, 'Ann')

    def test_update_rejects_unknown_role_and_status(self):
        url = reverse('accounts:user_detail', args=[self.teacher.pk])
        response = self.patch_json(url, {'role': 'janitor'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('role', response.json()['errors'])

        response = self.patch_json(url, {'status': 'PENDING'})
        self.assertEqual(response.status_code, 400)
        self.teacher.refresh_from_db()
        self.assertEqual(self.teacher.role, User.Role.TEACHER)

    def test_admin_cannot_change_own_role(self):
        response = self.patch_json(
            reverse('accounts:user_detail', args=[self.admin_user.pk]), {'role': 'teacher'}
        )
        self.assertEqual(response.status_code, 400)
        self.admin_user.refresh_from_db()
        self.assertEqual(self.admin_user.role, User.Role.DIRECTOR)

    def test_suspend_and_activate(self):
        response = self.client.post(reverse('accounts:user_suspend', args=[self.teacher.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['user']['status'], 'SUSPENDED')
        self.teacher.refresh_from_db()
        self.assertFalse(self.teacher.is_active)

        self.client.logout()
        response = self.client.post(
            reverse('accounts:login'),
            data=json.dumps({'email': 'teacher@school.com', 'password': 'Testpass123'}),
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 401)

        self.client.force_login(self.admin_user)
        response = self.client.post(reverse('accounts:user_activate', args=[self.teacher.pk]))
        self.assertEqual(response.status_code, 200)
        self.teacher.refresh_from_db()
        self.assertTrue(self.teacher.is_active)

    def test_status_through_patch(self):
        response = self.patch_json(
            reverse('accounts:user_detail', args=[self.bursar.pk]), {'status': 'SUSPENDED'}
        )
        self.assertEqual(response.status_code, 200)
        self.bursar.refresh_from_db()
        self.assertFalse(self.bursar.is_active)

    def test_cannot_suspend_or_delete_self(self):
        response = self.client.post(reverse('accounts:user_suspend', args=[self.admin_user.pk]))
        self.assertEqual(response.status_code, 400)
        response = self.client.delete(reverse('accounts:user_detail', args=[self.admin_user.pk]))
        self.assertEqual(response.status_code, 400)
        self.admin_user.refresh_from_db()
        self.assertTrue(self.admin_user.is_active)

    def test_superuser_protected_from_school_admins(self):
        owner = User.objects.create_superuser(email='owner@platform.com', password='Ownerpass123')
        response = self.client.post(reverse('accounts:user_suspend', args=[owner.pk]))
        self.assertEqual(response.status_code, 403)
        owner.refresh_from_db()
        self.assertTrue(owner.is_active)

    def test_delete_user(self):
        response = self.client.delete(reverse('accounts:user_detail', args=[self.bursar.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(User.objects.filter(email='bursar@school.com').exists())


class ForcePasswordChangeMiddlewareTests(TestCase):

    def setUp(self):
        self.user = User.objects.create_director(
            email='director@school.com', password='Testpass123', must_change_password=True
        )
        self.client.force_login(self.user)

    def test_api_blocked_until_password_changed(self):
        response = self.client.get(reverse('academics:classes'))
        self.assertEqual(response.status_code, 403)
        self.assertTrue(response.json()['must_change_password'])

    def test_allowed_urls(self):
        self.assertEqual(self.client.get(reverse('accounts:me')).status_code, 200)
        self.assertEqual(self.client.get(reverse('accounts:csrf')).status_code, 200)
