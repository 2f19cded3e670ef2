"""
Tests for the students app.

Focuses on:
- Promotion candidates and Term 3 evaluation
- Processing promotion decisions (promote, repeat, graduate, errors)
- Teacher overrides, statistics and history
- Student and promotion API views
"""
import json
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase
from django.urls import reverse

from academics.models import Assessment, Class, ClassSubject, Subject
from core.models import AcademicYear
from students import promotion
from students.models import Enrollment, Student

User = get_user_model()


class PromotionTestCase(TestCase):
    """Base test case: an S1 class with two S2 streams and a 2025 -> 2026 calendar."""

    def setUp(self):
        self.admin_user = User.objects.create_headteacher(email='head@school.com', password='Testpass123')
        self.client.force_login(self.admin_user)

        self.year = AcademicYear.objects.create(year=2025, is_current=True)
        self.next_year = AcademicYear.objects.create(year=2026)

        self.s1a = Class.objects.create(rank='S1', stream='A')
        self.s2a = Class.objects.create(rank='S2', stream='A')
        self.s2b = Class.objects.create(rank='S2', stream='B')

        self.maths = ClassSubject.objects.create(
            class_assigned=self.s1a, subject=Subject.objects.create(name='Mathematics'), year=2025
        )
        self.english = ClassSubject.objects.create(
            class_assigned=self.s1a, subject=Subject.objects.create(name='English'), year=2025
        )

        self.strong = self.create_student('Grace', 'ADM-001', self.s1a)
        self.weak = self.create_student('Peter', 'ADM-002', self.s1a)
        self.score(self.strong, self.maths, 30, 40)
        self.score(self.strong, self.english, 25, 35)
        self.score(self.weak, self.maths, 10, 20)
        self.score(self.weak, self.english, 30, 40)

    def create_student(self, first_name, admission_number, class_obj):
        student = Student.objects.create(
            first_name=first_name, last_name='Test', gender='F',
            admission_number=admission_number, current_class=class_obj,
        )
        Enrollment.objects.create(student=student, academic_year=self.year, class_assigned=class_obj)
        return student

    def score(self, student, class_subject, continuous, eot, term='T3'):
        return Assessment.objects.create(
            student=student, class_subject=class_subject, year=class_subject.year, term=term,
            continuous_score=Decimal(continuous), eot_score=Decimal(eot),
        )

    def enrollment(self, student, year=None):
        return Enrollment.objects.get(student=student, academic_year=year or self.year)

    def post_json(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type='application/json')


class NextLevelInfoTests(PromotionTestCase):

    def test_suggests_same_stream(self):
        info = promotion.next_level_info(self.s1a)
        self.assertEqual(info['next_rank'], 'S2')
        self.assertEqual(info['next_level'], 'O')
        self.assertEqual(info['next_level_display'], 'Senior 2')
        self.assertEqual(info['suggested_class_id'], self.s2a.pk)
        self.assertEqual({c['id'] for c in info['available_classes']}, {self.s2a.pk, self.s2b.pk})
        self.assertFalse(info['is_graduating_class'])

    def test_single_candidate_suggested_across_streams(self):
        s4 = Class.objects.create(rank='S4', stream='B')
        s5 = Class.objects.create(rank='S5', stream='Sciences')
        info = promotion.next_level_info(s4)
        self.assertTrue(info['is_o_level_to_a_level'])
        self.assertEqual(info['next_level'], 'A')
        self.assertEqual(info['suggested_class_id'], s5.pk)

    def test_no_suggestion_when_ambiguous(self):
        s1c = Class.objects.create(rank='S1', stream='C')
        self.assertIsNone(promotion.next_level_info(s1c)['suggested_class_id'])

    def test_graduating_class(self):
        s6 = Class.objects.create(rank='S6', stream='Arts')
        info = promotion.next_level_info(s6)
        self.assertTrue(info['is_graduating_class'])
        self.assertEqual(info['next_level_display'], 'Graduation')
        self.assertIsNone(info['next_rank'])
        self.assertEqual(info['available_classes'], [])


class StudentsForPromotionTests(PromotionTestCase):

    def test_evaluation(self):
        data = promotion.students_for_promotion(self.s1a, self.year)
        by_id = {s['id']: s for s in data['students']}

        strong = by_id[self.strong.pk]
        self.assertEqual(strong['average_score'], 65.0)
        self.assertEqual(strong['passed_subjects'], 2)
        self.assertEqual(strong['pass_status'], 'PASS')
        self.assertTrue(strong['qualifies_for_promotion'])
        self.assertEqual(strong['promotion_status'], promotion.PENDING)

        weak = by_id[self.weak.pk]
        self.assertEqual(weak['average_score'], 50.0)
        self.assertEqual(weak['failed_subjects'], 1)
        self.assertTrue(weak['qualifies_for_promotion'])

        self.assertEqual(data['total_students'], 2)
        self.assertTrue(data['can_process'])
        self.assertEqual(data['next_academic_year']['year'], 2026)

    def test_other_terms_ignored(self):
        third = self.create_student('Zed', 'ADM-003', self.s1a)
        self.score(third, self.maths, 50, 50, term='T1')
        data = promotion.students_for_promotion(self.s1a, self.year)
        zed = next(s for s in data['students'] if s['id'] == third.pk)
        self.assertEqual(zed['subject_count'], 0)
        self.assertFalse(zed['qualifies_for_promotion'])

    def test_cannot_process_without_next_year(self):
        self.next_year.delete()
        data = promotion.students_for_promotion(self.s1a, self.year)
        self.assertFalse(data['can_process'])

    def test_default_decisions(self):
        students = [
            {'id': 1, 'qualifies_for_promotion': True},
            {'id': 2, 'qualifies_for_promotion': False},
        ]
        decisions = promotion.default_decisions(students, self.s2a.pk, self.s1a.pk)
        self.assertEqual(decisions[0], {
            'student_id': 1, 'action': 'PROMOTE', 'to_class_id': self.s2a.pk,
            'remarks': 'Auto-promote based on qualifying grade',
        })
        self.assertEqual(decisions[1]['action'], 'REPEAT')
        self.assertEqual(decisions[1]['to_class_id'], self.s1a.pk)


class ProcessPromotionsTests(PromotionTestCase):

    def test_promote_and_repeat(self):
        result = promotion.process_promotions(self.s1a, self.year, self.next_year, [
            {'student_id': self.strong.pk, 'action': 'PROMOTE', 'to_class_id': self.s2b.pk},
            {'student_id': self.weak.pk, 'action': 'repeat', 'remarks': 'Needs support'},
        ])
        self.assertEqual(result['summary'], {
            'promoted': 1, 'repeated': 1, 'graduated': 0, 'errors': 0, 'total': 2,
        })

        old = self.enrollment(self.strong)
        self.assertEqual(old.status, Enrollment.Status.PROMOTED)
        self.assertEqual(old.average_score, Decimal('65.00'))
        new = self.enrollment(self.strong, self.next_year)
        self.assertEqual(new.class_assigned, self.s2b)
        self.assertEqual(new.promoted_from, old)
        self.strong.refresh_from_db()
        self.assertEqual(self.strong.current_class, self.s2b)

        repeat = self.enrollment(self.weak, self.next_year)
        self.assertEqual(repeat.class_assigned, self.s1a)
        self.assertEqual(self.enrollment(self.weak).remarks, 'Needs support')

    def test_target_must_be_next_rank(self):
        result = promotion.process_promotions(self.s1a, self.year, self.next_year, [
            {'student_id': self.strong.pk, 'action': 'PROMOTE', 'to_class_id': self.s1a.pk},
        ])
        self.assertEqual(result['summary']['errors'], 1)
        self.assertIn('is not a Senior 2 class', result['results']['errors'][0]['error'])
        self.assertEqual(self.enrollment(self.strong).status, Enrollment.Status.ACTIVE)

    def test_errors_do_not_block_other_decisions(self):
        result = promotion.process_promotions(self.s1a, self.year, self.next_year, [
            {'student_id': 'abc', 'action': 'PROMOTE'},
            {'student_id': self.strong.pk, 'action': 'SKIP'},
            {'student_id': self.weak.pk, 'action': 'REPEAT'},
        ])
        self.assertEqual(result['summary']['errors'], 2)
        self.assertEqual(result['summary']['repeated'], 1)

    def test_already_processed_rejected(self):
        decision = {'student_id': self.weak.pk, 'action': 'REPEAT'}
        promotion.process_promotions(self.s1a, self.year, self.next_year, [decision])
        result = promotion.process_promotions(self.s1a, self.year, self.next_year, [decision])
        self.assertEqual(result['summary']['errors'], 1)
        self.assertIn('already processed', result['results']['errors'][0]['error'])

    def test_graduation(self):
        s6 = Class.objects.create(rank='S6', stream='Sciences')
        leaver = self.create_student('Ivy', 'ADM-600', s6)
        result = promotion.process_promotions(s6, self.year, None, [
            {'student_id': leaver.pk, 'action': 'PROMOTE'},
        ])
        self.assertEqual(result['summary']['graduated'], 1)
        leaver.refresh_from_db()
        self.assertEqual(leaver.status, Student.Status.GRADUATED)
        self.assertIsNone(leaver.current_class)
        self.assertEqual(self.enrollment(leaver).status, Enrollment.Status.GRADUATED)
        self.assertFalse(Enrollment.objects.filter(student=leaver, academic_year=self.next_year).exists())

    def test_repeat_needs_next_year(self):
        result = promotion.process_promotions(self.s1a, self.year, None, [
            {'student_id': self.weak.pk, 'action': 'REPEAT'},
        ])
        self.assertEqual(result['summary']['errors'], 1)


class OverrideTests(PromotionTestCase):

    def test_reason_required(self):
        with self.assertRaises(ValidationError):
            promotion.teacher_override(self.weak, self.s1a, 'PROMOTE', '  ', self.year, self.next_year)

    def test_override_replaces_previous_decision(self):
        promotion.process_promotions(self.s1a, self.year, self.next_year, [
            {'student_id': self.weak.pk, 'action': 'REPEAT'},
        ])
        result = promotion.teacher_override(
            self.weak, self.s1a, 'PROMOTE', 'Sat a make-up exam', self.year, self.next_year,
        )
        self.assertEqual(result['summary']['promoted'], 1)

        old = self.enrollment(self.weak)
        self.assertEqual(old.status, Enrollment.Status.PROMOTED)
        self.assertEqual(old.remarks, 'Teacher override: Sat a make-up exam')
        # Suggested class used when none given
        self.assertEqual(self.enrollment(self.weak, self.next_year).class_assigned, self.s2a)

    def test_failed_override_keeps_previous_decision(self):
        promotion.process_promotions(self.s1a, self.year, self.next_year, [
            {'student_id': self.weak.pk, 'action': 'REPEAT'},
        ])
        with self.assertRaises(ValidationError):
            promotion.teacher_override(
                self.weak, self.s1a, 'PROMOTE', 'Wrong class', self.year, self.next_year, to_class=self.s1a,
            )
        self.assertEqual(self.enrollment(self.weak).status, Enrollment.Status.REPEATED)


class StatsAndHistoryTests(PromotionTestCase):

    def test_stats(self):
        promotion.process_promotions(self.s1a, self.year, self.next_year, [
            {'student_id': self.weak.pk, 'action': 'REPEAT'},
        ])
        stats = promotion.promotion_stats(self.s1a, self.year)
        self.assertEqual(stats, {
            'total_students': 2, 'promoted': 0, 'repeated': 1, 'pending': 1, 'percentage_complete': 50.0,
        })

    def test_history(self):
        promotion.process_promotions(self.s1a, self.year, self.next_year, [
            {'student_id': self.strong.pk, 'action': 'PROMOTE', 'to_class_id': self.s2a.pk},
        ])
        history = promotion.student_history(self.strong)
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0]['from_class'], 'S.1 A')
        self.assertEqual(history[0]['to_class'], 'S.2 A')
        self.assertEqual(history[0]['status'], 'PROMOTED')

    def test_format_promotion_status(self):
        self.assertEqual(promotion.format_promotion_status('REPEATED'), {'text': 'Repeating', 'color': 'amber'})
        self.assertEqual(promotion.format_promotion_status('ODD'), {'text': 'ODD', 'color': 'gray'})


class PromotionViewTests(PromotionTestCase):

    def test_class_students(self):
        response = self.client.get(reverse('students:promotion_class_students', args=[self.s1a.pk]))
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['total_students'], 2)
        self.assertEqual(data['students'][0]['promotion_status_display']['text'], 'Pending')

    def test_process_with_default_decisions(self):
        with mock.patch('academics.tasks.rollover_class_subjects.delay') as delay:
            response = self.post_json(
                reverse('students:promotion_process', args=[self.s1a.pk]),
                {'year': 2025, 'rollover_subjects': True}
            )
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['summary']['promoted'], 2)
        self.assertEqual(data['rollover_classes'], [self.s2a.pk])
        delay.assert_called_once_with(self.s2a.pk, self.s1a.pk, 2025, 2026)

    def test_override_requires_reason(self):
        response = self.post_json(reverse('students:promotion_override'), {
            'student_id': self.weak.pk, 'from_class_id': self.s1a.pk, 'action': 'REPEAT', 'reason': '',
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn('reason', response.json()['errors'])

    def test_unrelated_teacher_forbidden(self):
        teacher_user = User.objects.create_teacher(email='t@school.com', password='Testpass123')
        self.client.force_login(teacher_user)
        response = self.client.get(reverse('students:promotion_class_students', args=[self.s1a.pk]))
        self.assertEqual(response.status_code, 403)

    def test_admin_reads_next_level_and_stats(self):
        response = self.client.get(reverse('students:promotion_next_level', args=[self.s1a.pk]))
        self.assertEqual(response.status_code, 200)
        response = self.client.get(reverse('students:promotion_stats', args=[self.s1a.pk]), {'year': 2025})
        self.assertEqual(response.status_code, 200)

    def test_unrelated_teacher_cannot_read_next_level_or_stats(self):
        teacher_user = User.objects.create_teacher(email='t@school.com', password='Testpass123')
        self.client.force_login(teacher_user)
        for name in ('students:promotion_next_level', 'students:promotion_stats'):
            with self.subTest(name=name):
                response = self.client.get(reverse(name, args=[self.s1a.pk]))
                self.assertEqual(response.status_code, 403)

    def test_history_endpoint(self):
        response = self.client.get(reverse('students:promotion_history', args=[self.strong.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['history'], [])


class StudentViewTests(PromotionTestCase):

    def test_admit_student_enrolls_in_current_year(self):
        response = self.post_json(reverse('students:students'), {
            'first_name': 'New', 'last_name': 'Learner', 'gender': 'M',
            'admission_number': 'adm-100', 'current_class_id': self.s2a.pk,
        })
        self.assertEqual(response.status_code, 201)
        student = Student.objects.get(admission_number='ADM-100')
        self.assertEqual(self.enrollment(student).class_assigned, self.s2a)

    def test_duplicate_admission_number(self):
        response = self.post_json(reverse('students:students'), {
            'first_name': 'Copy', 'last_name': 'Cat', 'gender': 'F', 'admission_number': 'adm-001',
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn('admission_number', response.json()['errors'])

    def test_search(self):
        response = self.client.get(reverse('students:students'), {'search': 'grace'})
        self.assertEqual([s['admission_number'] for s in response.json()['students']], ['ADM-001'])
