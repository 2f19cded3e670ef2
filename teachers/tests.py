import json
from datetime import date

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from academics.models import Class, ClassSubject, Subject
from teachers.forms import TeacherForm
from teachers.models import Teacher
from teachers.views.accounts import generate_temp_password

User = get_user_model()


class TeacherModelTests(TestCase):
    """Tests for the Teacher model."""

    def _create_teacher(self, **kwargs):
        defaults = {
            'first_name': 'Kwame',
            'last_name': 'Asante',
            'date_of_birth': date(1985, 3, 15),
            'gender': 'M',
            'staff_id': 'TCH-001',
            'employment_date': date(2020, 9, 1),
        }
        defaults.update(kwargs)
        return Teacher.objects.create(**defaults)

    def test_create_teacher(self):
        teacher = self._create_teacher()
        self.assertEqual(teacher.first_name, 'Kwame')
        self.assertEqual(teacher.status, Teacher.Status.ACTIVE)

    def test_full_name(self):
        teacher = self._create_teacher(middle_name='Kwesi')
        self.assertEqual(teacher.full_name, 'Kwame Kwesi Asante')

    def test_full_name_no_middle(self):
        teacher = self._create_teacher()
        self.assertEqual(teacher.full_name, 'Kwame Asante')
        self.assertEqual(str(teacher), 'Kwame Asante')

    def test_initials(self):
        teacher = self._create_teacher(first_name='akello', last_name='mary')
        self.assertEqual(teacher.initials, 'AM')

    def test_initials_flow_into_class_subject(self):
        teacher = self._create_teacher()
        class_subject = ClassSubject.objects.create(
            class_assigned=Class.objects.create(rank='S1'),
            subject=Subject.objects.create(name='Physics'),
            year=2025,
        )
        class_subject.assign_instructor(teacher)
        self.assertEqual(class_subject.instructor_initials, 'KA')


class TeacherFormTests(TestCase):

    def form_data(self, **kwargs):
        data = {
            'first_name': 'Ruth', 'last_name': 'Namuli', 'gender': 'F',
            'staff_id': 'TCH-010', 'status': 'active', 'qualification': 'B.Ed Biology',
            'employment_date': '2021-02-01', 'email': 'Ruth@School.com',
        }
        data.update(kwargs)
        return data

    def test_email_normalised(self):
        form = TeacherForm(data=self.form_data())
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['email'], 'ruth@school.com')

    def test_email_must_be_unique(self):
        Teacher.objects.create(first_name='A', last_name='B', staff_id='TCH-011', email='ruth@school.com')
        form = TeacherForm(data=self.form_data())
        self.assertFalse(form.is_valid())
        self.assertIn('email', form.errors)

    def test_qualification_required(self):
        form = TeacherForm(data=self.form_data(qualification=''))
        self.assertFalse(form.is_valid())
        self.assertIn('qualification', form.errors)


class TeacherViewTests(TestCase):

    def setUp(self):
        self.admin_user = User.objects.create_director(email='director@school.com', password='Testpass123')
        self.client.force_login(self.admin_user)
        self.teacher = Teacher.objects.create(
            first_name='John', last_name='Okello', staff_id='T-001', email='john@school.com'
        )

    def post_json(self, url, payload=None):
        return self.client.post(url, data=json.dumps(payload or {}), content_type='application/json')

    def test_list_and_search(self):
        Teacher.objects.create(first_name='Sarah', last_name='Achieng', staff_id='T-002')
        response = self.client.get(reverse('teachers:teachers'), {'search': 'okel'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([t['staff_id'] for t in response.json()['teachers']], ['T-001'])

    def test_create_teacher(self):
        response = self.post_json(reverse('teachers:teachers'), {
            'first_name': 'Ruth', 'last_name': 'Namuli', 'gender': 'F',
            'staff_id': 'T-003', 'status': 'active', 'qualification': 'B.Ed',
            'employment_date': '2021-02-01', 'email': 'ruth@school.com',
        })
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['teacher']['initials'], 'RN')

    def test_detail_lists_classes(self):
        Class.objects.create(rank='S2', stream='B', class_teacher=self.teacher)
        response = self.client.get(reverse('teachers:teacher_detail', args=[self.teacher.pk]))
        self.assertEqual(response.json()['classes'][0]['name'], 'S.2 B')

    def test_teachers_cannot_manage_staff(self):
        self.client.force_login(User.objects.create_teacher(email='t@school.com', password='Testpass123'))
        self.assertEqual(self.client.get(reverse('teachers:teachers')).status_code, 403)

    def test_create_account(self):
        response = self.post_json(reverse('teachers:create_account', args=[self.teacher.pk]))
        self.assertEqual(response.status_code, 201)
        data = response.json()

        self.teacher.refresh_from_db()
        user = self.teacher.user
        self.assertEqual(user.email, 'john@school.com')
        self.assertTrue(user.must_change_password)
        self.assertTrue(user.check_password(data['temporary_password']))

        again = self.post_json(reverse('teachers:create_account', args=[self.teacher.pk]))
        self.assertEqual(again.status_code, 409)

    def test_create_account_rejects_admin_role(self):
        response = self.post_json(reverse('teachers:create_account', args=[self.teacher.pk]), {'role': 'director'})
        self.assertEqual(response.status_code, 400)

    def test_deactivate_account(self):
        self.post_json(reverse('teachers:create_account', args=[self.teacher.pk]))
        response = self.post_json(reverse('teachers:deactivate_account', args=[self.teacher.pk]))
        self.assertEqual(response.status_code, 200)
        self.teacher.refresh_from_db()
        self.assertFalse(self.teacher.user.is_active)

    def test_temp_password_mix(self):
        for _ in range(20):
            password = generate_temp_password()
            self.assertEqual(len(password), 10)
            self.assertTrue(any(c.isupper() for c in password))
            self.assertTrue(any(c.islower() for c in password))
            self.assertTrue(any(c.isdigit() for c in password))
