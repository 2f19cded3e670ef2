import json

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.test import RequestFactory, SimpleTestCase, TestCase
from django.urls import reverse
from django.utils import timezone

from core.choices import Term
from core.models import AcademicYear
from core.utils import (
    admin_required, form_errors, parse_int, parse_json_body, parse_uuid, teacher_or_admin_required,
    validation_error_message,
)

User = get_user_model()


class AcademicYearTests(TestCase):
    """Tests for the AcademicYear model."""

    def test_default_name(self):
        year = AcademicYear.objects.create(year=2025)
        self.assertEqual(year.name, '2025 Academic Year')
        self.assertEqual(str(year), '2025 Academic Year')

    def test_only_one_current(self):
        first = AcademicYear.objects.create(year=2025, is_current=True)
        second = AcademicYear.objects.create(year=2026, is_current=True)
        first.refresh_from_db()
        self.assertFalse(first.is_current)
        self.assertEqual(AcademicYear.get_current(), second)

    def test_get_current_none(self):
        AcademicYear.objects.create(year=2025)
        self.assertIsNone(AcademicYear.get_current())

    def test_get_next_skips_gaps(self):
        year = AcademicYear.objects.create(year=2024)
        AcademicYear.objects.create(year=2027)
        AcademicYear.objects.create(year=2026)
        self.assertEqual(year.get_next().year, 2026)
        self.assertIsNone(AcademicYear.objects.get(year=2027).get_next())


class TermTests(SimpleTestCase):

    def test_parse(self):
        self.assertEqual(Term.parse('t2'), Term.TERM_2)
        self.assertEqual(Term.parse(3), Term.TERM_3)
        self.assertEqual(Term.parse(' T1 '), Term.TERM_1)
        self.assertIsNone(Term.parse('T4'))
        self.assertIsNone(Term.parse(None))


class ParsingHelperTests(SimpleTestCase):

    def setUp(self):
        self.factory = RequestFactory()

    def test_parse_json_body(self):
        request = self.factory.post('/', data=json.dumps({'a': 1}), content_type='application/json')
        self.assertEqual(parse_json_body(request), ({'a': 1}, None))

    def test_parse_json_body_rejects_invalid(self):
        request = self.factory.post('/', data='{oops', content_type='application/json')
        data, error = parse_json_body(request)
        self.assertIsNone(data)
        self.assertEqual(error.status_code, 400)

        request = self.factory.post('/', data='[1, 2]', content_type='application/json')
        self.assertEqual(parse_json_body(request)[1].status_code, 400)

    def test_parse_int(self):
        self.assertEqual(parse_int('12'), 12)
        self.assertIsNone(parse_int('twelve'))
        self.assertEqual(parse_int(None, 3), 3)

    def test_parse_uuid(self):
        value = '12345678-1234-5678-1234-567812345678'
        self.assertEqual(str(parse_uuid(value)), value)
        self.assertIsNone(parse_uuid('abc'))
        self.assertIsNone(parse_uuid(17))
        self.assertIsNone(parse_uuid(None))

    def test_validation_error_message(self):
        error = ValidationError({'stream': ['Bad stream'], '__all__': ['Duplicate class']})
        message = validation_error_message(error)
        self.assertIn('stream: Bad stream', message)
        self.assertIn('Duplicate class', message)
        self.assertEqual(validation_error_message(ValidationError('Plain')), 'Plain')


class PermissionDecoratorTests(TestCase):

    def setUp(self):
        self.factory = RequestFactory()

        @admin_required
        def admin_view(request):
            return JsonResponse({'ok': True})

        @teacher_or_admin_required
        def staff_view(request):
            return JsonResponse({'ok': True})

        self.admin_view = admin_view
        self.staff_view = staff_view

    def request_as(self, user):
        request = self.factory.get('/')
        request.user = user
        return request

    def test_anonymous(self):
        from django.contrib.auth.models import AnonymousUser
        self.assertEqual(self.admin_view(self.request_as(AnonymousUser())).status_code, 401)
        self.assertEqual(self.staff_view(self.request_as(AnonymousUser())).status_code, 401)

    def test_roles(self):
        director = User.objects.create_director(email='d@school.com', password='Testpass123')
        teacher = User.objects.create_teacher(email='t@school.com', password='Testpass123')
        bursar = User.objects.create_bursar(email='b@school.com', password='Testpass123')

        self.assertEqual(self.admin_view(self.request_as(director)).status_code, 200)
        self.assertEqual(self.admin_view(self.request_as(teacher)).status_code, 403)
        self.assertEqual(self.staff_view(self.request_as(teacher)).status_code, 200)
        self.assertEqual(self.staff_view(self.request_as(bursar)).status_code, 403)


class FormErrorsTests(SimpleTestCase):

    def test_flattens_errors(self):
        from django import forms

        class SampleForm(forms.Form):
            name = forms.CharField()

        form = SampleForm(data={})
        form.is_valid()
        self.assertEqual(form_errors(form), {'name': ['This field is required.']})


class AcademicYearViewTests(TestCase):

    def setUp(self):
        self.admin_user = User.objects.create_director(email='d@school.com', password='Testpass123')
        self.client.force_login(self.admin_user)
        self.current = AcademicYear.objects.create(year=2025, is_current=True)

    def post_json(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type='application/json')

    def patch_json(self, url, payload):
        return self.client.patch(url, data=json.dumps(payload), content_type='application/json')

    def test_list_years(self):
        AcademicYear.objects.create(year=2026)
        response = self.client.get(reverse('core:academic_years'))
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['count'], 2)
        self.assertEqual([y['year'] for y in data['academic_years']], [2026, 2025])

    def test_create_year(self):
        response = self.post_json(reverse('core:academic_years'), {
            'year': 2026, 'start_date': '2026-02-02', 'end_date': '2026-12-04',
        })
        self.assertEqual(response.status_code, 201)
        data = response.json()['academic_year']
        self.assertEqual(data['name'], '2026 Academic Year')
        self.assertFalse(data['is_current'])
        self.assertEqual(data['start_date'], '2026-02-02')

    def test_create_rejects_reversed_dates_and_duplicates(self):
        url = reverse('core:academic_years')
        response = self.post_json(url, {'year': 2026, 'start_date': '2026-12-01', 'end_date': '2026-02-01'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('__all__', response.json()['errors'])

        response = self.post_json(url, {'year': 2025})
        self.assertEqual(response.status_code, 400)
        self.assertIn('year', response.json()['errors'])

        response = self.post_json(url, {'year': 'next'})
        self.assertEqual(response.status_code, 400)

    def test_teacher_cannot_create(self):
        teacher = User.objects.create_teacher(email='t@school.com', password='Testpass123')
        self.client.force_login(teacher)
        self.assertEqual(self.client.get(reverse('core:academic_years')).status_code, 200)
        response = self.post_json(reverse('core:academic_years'), {'year': 2026})
        self.assertEqual(response.status_code, 403)
        self.assertFalse(AcademicYear.objects.filter(year=2026).exists())

    def test_current_year_with_terms(self):
        response = self.client.get(reverse('core:academic_year_current'))
        self.assertEqual(response.status_code, 200)
        data = response.json()['academic_year']
        self.assertEqual(data['year'], 2025)
        self.assertEqual([t['value'] for t in data['terms']], ['T1', 'T2', 'T3'])

    def test_current_year_missing(self):
        AcademicYear.objects.all().delete()
        response = self.client.get(reverse('core:academic_year_current'))
        self.assertEqual(response.status_code, 404)

    def test_set_current_releases_previous(self):
        following = AcademicYear.objects.create(year=2026)
        response = self.post_json(reverse('core:academic_year_set_current', args=[following.pk]), {})
        self.assertEqual(response.status_code, 200)
        self.current.refresh_from_db()
        self.assertFalse(self.current.is_current)
        self.assertEqual(AcademicYear.get_current(), following)

    def test_set_current_requires_admin(self):
        following = AcademicYear.objects.create(year=2026)
        self.client.force_login(User.objects.create_teacher(email='t@school.com', password='Testpass123'))
        response = self.post_json(reverse('core:academic_year_set_current', args=[following.pk]), {})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(AcademicYear.get_current(), self.current)

    def test_initialize_creates_calendar_year(self):
        AcademicYear.objects.all().delete()
        response = self.post_json(reverse('core:academic_year_initialize'), {})
        self.assertEqual(response.status_code, 201)
        data = response.json()['academic_year']
        self.assertEqual(data['year'], timezone.localdate().year)
        self.assertTrue(data['is_current'])

        response = self.post_json(reverse('core:academic_year_initialize'), {})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(AcademicYear.objects.count(), 1)

    def test_patch_keeps_unsent_fields(self):
        url = reverse('core:academic_year_detail', args=[self.current.pk])
        response = self.patch_json(url, {'start_date': '2025-02-03'})
        self.assertEqual(response.status_code, 200)
        self.current.refresh_from_db()
        self.assertEqual(self.current.year, 2025)
        self.assertTrue(self.current.is_current)
        self.assertEqual(self.current.start_date.isoformat(), '2025-02-03')

    def test_patch_cannot_unset_current(self):
        url = reverse('core:academic_year_detail', args=[self.current.pk])
        response = self.patch_json(url, {'is_current': False})
        self.assertEqual(response.status_code, 400)

    def test_delete(self):
        old = AcademicYear.objects.create(year=2020)
        response = self.client.delete(reverse('core:academic_year_detail', args=[old.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(AcademicYear.objects.filter(year=2020).exists())

        response = self.client.delete(reverse('core:academic_year_detail', args=[self.current.pk]))
        self.assertEqual(response.status_code, 409)
