"""
Tests for the academics app.

Focuses on:
- Class taxonomy (ranks, streams, naming, progression)
- Class identity derived on save and stream validation
- Subject setup, competences per term and year roll-over
- Class, subject and assessment API views
"""
import json
from datetime import date
from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from django.contrib.auth import get_user_model

from academics import taxonomy
from academics.models import Assessment, Class, ClassSubject, Competence, Subject
from academics.taxonomy import Promotion, Rank
from academics.utils import (
    class_setup_status, class_summary, clone_competencies_from_previous_year,
    setup_class_subjects, validate_setup_subjects,
)
from core.models import AcademicYear
from students.models import Enrollment, Student
from teachers.models import Teacher

User = get_user_model()


# =============================================================================
# TAXONOMY
# =============================================================================

class RankCatalogueTests(SimpleTestCase):

    def test_available_ranks_ordered_with_levels(self):
        ranks = taxonomy.available_ranks()
        self.assertEqual([r.rank for r in ranks], ['S1', 'S2', 'S3', 'S4', 'S5', 'S6'])
        self.assertEqual([r.level for r in ranks], ['O', 'O', 'O', 'O', 'A', 'A'])
        self.assertEqual(
            [r.requires_stream for r in ranks],
            [False, False, False, False, True, True]
        )
        self.assertEqual(ranks[3].description, 'Senior 4 (O-Level Final)')
        self.assertEqual(ranks[5].description, 'Senior 6 (A-Level Final)')

    def test_streams_for_a_level(self):
        for rank in ('S5', 's6'):
            streams = taxonomy.available_streams(rank)
            self.assertEqual([s.value for s in streams], ['Sciences', 'Arts'])

    def test_streams_for_o_level_and_unknown(self):
        for rank in ('S1', 'S4', '', 'X9', None):
            streams = taxonomy.available_streams(rank)
            self.assertEqual([s.value for s in streams], [None, 'A', 'B', 'C'])
            self.assertEqual(streams[0].label, 'No Stream')
            self.assertEqual(streams[1].label, 'Stream A')

    def test_requires_stream_and_level(self):
        self.assertTrue(taxonomy.rank_requires_stream('s5'))
        self.assertTrue(taxonomy.rank_requires_stream('S6'))
        self.assertFalse(taxonomy.rank_requires_stream('S4'))
        self.assertFalse(taxonomy.rank_requires_stream('bogus'))
        self.assertEqual(taxonomy.level_from_rank('S6'), 'A')
        self.assertEqual(taxonomy.level_from_rank('S1'), 'O')
        self.assertEqual(taxonomy.level_from_rank('nonsense'), 'O')

    def test_available_ranks_is_stable_between_calls(self):
        first = taxonomy.available_ranks()
        second = taxonomy.available_ranks()
        self.assertEqual(first, second)
        self.assertIsNot(first, second)

    def test_catalogue_agrees_with_stream_rules(self):
        for option in taxonomy.available_ranks():
            with self.subTest(rank=option.rank):
                self.assertEqual(option.requires_stream, taxonomy.rank_requires_stream(option.rank))
                values = [s.value for s in taxonomy.available_streams(option.rank)]
                self.assertEqual(values == ['Sciences', 'Arts'], option.requires_stream)


class ClassNameTests(SimpleTestCase):

    def test_generate_class_name(self):
        self.assertEqual(taxonomy.generate_class_name('S1'), 'S.1')
        self.assertEqual(taxonomy.generate_class_name('S2', 'B'), 'S.2 B')
        self.assertEqual(taxonomy.generate_class_name('S5', 'Sciences'), 'S.5 Sciences')
        self.assertEqual(taxonomy.generate_class_name('S4', ''), 'S.4')

    def test_generate_class_name_normalizes_case(self):
        """Lower-case ranks are parsed, so "s5" reads "S.5" rather than "s5"."""
        self.assertEqual(taxonomy.generate_class_name('s5'), 'S.5')
        self.assertEqual(taxonomy.generate_class_name('s6', 'Arts'), 'S.6 Arts')

    def test_generate_class_name_empty_rank(self):
        self.assertEqual(taxonomy.generate_class_name(''), '')
        self.assertEqual(taxonomy.generate_class_name(None, 'A'), '')


class ProgressionTests(SimpleTestCase):

    def test_next_rank_chain(self):
        self.assertEqual(taxonomy.next_rank('S1'), Rank.S2)
        self.assertEqual(taxonomy.next_rank('S4'), Rank.S5)
        self.assertEqual(taxonomy.next_rank('s5'), Rank.S6)

    def test_next_rank_none_for_graduation_and_unknown(self):
        self.assertIsNone(taxonomy.next_rank('S6'))
        self.assertIsNone(taxonomy.next_rank('S7'))
        self.assertIsNone(taxonomy.next_rank(''))

    def test_next_rank_walks_s1_to_s6_then_stops(self):
        rank = Rank.S1
        for _ in range(5):
            rank = taxonomy.next_rank(rank)
        self.assertEqual(rank, Rank.S6)
        self.assertIsNone(taxonomy.next_rank(rank))

    def test_promotion_for_distinguishes_outcomes(self):
        self.assertEqual(taxonomy.promotion_for('S3'), Promotion(Promotion.PROMOTE, Rank.S4))
        graduation = taxonomy.promotion_for('S6')
        self.assertEqual(graduation.status, Promotion.GRADUATE)
        self.assertTrue(graduation.is_graduation)
        unknown = taxonomy.promotion_for('P7')
        self.assertEqual(unknown.status, Promotion.UNRECOGNIZED)
        self.assertFalse(unknown.is_graduation)

    def test_level_flags(self):
        self.assertTrue(taxonomy.is_graduating_rank('S6'))
        self.assertFalse(taxonomy.is_graduating_rank('S5'))
        self.assertTrue(taxonomy.is_o_to_a_level_transition('S4'))
        self.assertFalse(taxonomy.is_o_to_a_level_transition('S3'))


class DisplayHelperTests(SimpleTestCase):

    def test_rank_display(self):
        self.assertEqual(taxonomy.format_rank_display('S3'), 'Senior 3')
        self.assertEqual(taxonomy.format_rank_display('Grade 9'), 'Grade 9')
        self.assertEqual(taxonomy.promotion_rank_display('S4'), 'Senior 4 (O-Level)')
        self.assertEqual(taxonomy.promotion_rank_display('S2'), 'Senior 2')

    def test_level_display_name(self):
        self.assertEqual(taxonomy.level_display_name('O'), 'O-Level')
        self.assertEqual(taxonomy.level_display_name('a'), 'A-Level')
        self.assertEqual(taxonomy.level_display_name('S6'), 'Senior 6 (A-Level)')

    def test_format_term(self):
        self.assertEqual(taxonomy.format_term('T1'), 'Term 1')
        self.assertEqual(taxonomy.format_term('3'), 'Term 3')
        self.assertEqual(taxonomy.format_term('T9'), 'T9')

    def test_generate_initials(self):
        self.assertEqual(taxonomy.generate_initials('jane', 'okello'), 'JO')
        self.assertEqual(taxonomy.generate_initials('', 'Okello'), 'O')


# =============================================================================
# BASE TEST CASE
# =============================================================================

class AcademicsTestCase(TestCase):
    """Base test case with common setup for academics tests."""

    def setUp(self):
        """Set up test data."""
        self.admin_user = User.objects.create_director(
            email='admin@school.com',
            password='Testpass123'
        )
        self.client.force_login(self.admin_user)

        self.current_year = AcademicYear.objects.create(year=2025, is_current=True)

        self.teacher = Teacher.objects.create(
            first_name='John',
            last_name='Okello',
            email='teacher@school.com',
            staff_id='T-001',
            phone_number='0701234568',
            date_of_birth=date(1985, 5, 15),
            employment_date=date(2020, 1, 1)
        )

    def create_class(self, rank, stream=''):
        """Helper to create a class."""
        return Class.objects.create(rank=rank, stream=stream)

    def create_student(self, first_name, admission_number, class_obj=None, gender='M'):
        """Helper to create a student enrolled in the current year."""
        student = Student.objects.create(
            first_name=first_name,
            last_name='Test',
            gender=gender,
            admission_number=admission_number,
            current_class=class_obj,
        )
        if class_obj:
            Enrollment.objects.create(
                student=student,
                academic_year=self.current_year,
                class_assigned=class_obj,
            )
        return student

    def post_json(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type='application/json')

    def patch_json(self, url, payload):
        return self.client.patch(url, data=json.dumps(payload), content_type='application/json')

    def put_json(self, url, payload):
        return self.client.put(url, data=json.dumps(payload), content_type='application/json')


# =============================================================================
# MODEL TESTS
# =============================================================================

class ClassModelTests(AcademicsTestCase):

    def test_name_and_level_derived_on_save(self):
        class_obj = self.create_class('s5', 'Sciences')
        self.assertEqual(class_obj.rank, 'S5')
        self.assertEqual(class_obj.level, 'A')
        self.assertEqual(class_obj.name, 'S.5 Sciences')

    def test_name_recomputed_when_stream_changes(self):
        class_obj = self.create_class('S2', 'A')
        class_obj.stream = 'C'
        class_obj.save()
        self.assertEqual(class_obj.name, 'S.2 C')
        self.assertEqual(class_obj.level, 'O')

    def test_a_level_requires_stream(self):
        class_obj = Class(rank='S6')
        with self.assertRaises(ValidationError) as ctx:
            class_obj.full_clean()
        self.assertIn('stream', ctx.exception.message_dict)

    def test_o_level_stream_must_be_known(self):
        with self.assertRaises(ValidationError):
            Class(rank='S1', stream='D').full_clean()
        with self.assertRaises(ValidationError):
            Class(rank='S1', stream='Sciences').full_clean()
        Class(rank='S1', stream='B').full_clean()

    def test_rank_and_stream_unique(self):
        self.create_class('S3', 'A')
        with self.assertRaises(IntegrityError):
            self.create_class('S3', 'A')


class CompetenceTests(AcademicsTestCase):

    def setUp(self):
        super().setUp()
        self.class_obj = self.create_class('S1', 'A')
        self.subject = Subject.objects.create(name='Mathematics')
        self.class_subject = ClassSubject.objects.create(
            class_assigned=self.class_obj, subject=self.subject, year=2025
        )

    def test_replace_renumbers_by_supplied_order(self):
        created = Competence.replace_for_term(self.class_subject, 2025, 'T1', [
            {'name': 'Fractions', 'idx': 5},
            {'name': 'Algebra', 'idx': 2, 'max_score': 10},
        ])
        self.assertEqual([(c.idx, c.name) for c in created], [(1, 'Algebra'), (2, 'Fractions')])
        stored = list(Competence.objects.for_term(self.class_subject, 2025, 'T1'))
        self.assertEqual(stored[0].max_score, 10)
        self.assertEqual(stored[1].max_score, 3)

    def test_replace_discards_previous_set(self):
        Competence.replace_for_term(self.class_subject, 2025, 'T1', [{'name': 'Old'}])
        Competence.replace_for_term(self.class_subject, 2025, 'T1', [{'name': 'New'}])
        names = list(Competence.objects.for_term(self.class_subject, 2025, 'T1').values_list('name', flat=True))
        self.assertEqual(names, ['New'])

    def test_empty_term_clones_latest_edited_term(self):
        Competence.replace_for_term(self.class_subject, 2025, 'T1', [{'name': 'Numbers'}])
        Competence.replace_for_term(self.class_subject, 2025, 'T2', [{'name': 'Geometry'}, {'name': 'Graphs'}])

        competences = Competence.get_or_clone_for_term(self.class_subject, 2025, 'T3')
        self.assertEqual([c.name for c in competences], ['Geometry', 'Graphs'])
        self.assertTrue(all(c.term == 'T3' for c in competences))
        # Source term left intact
        self.assertEqual(Competence.objects.for_term(self.class_subject, 2025, 'T2').count(), 2)

    def test_existing_term_not_overwritten(self):
        Competence.replace_for_term(self.class_subject, 2025, 'T1', [{'name': 'Numbers'}])
        Competence.replace_for_term(self.class_subject, 2025, 'T2', [{'name': 'Geometry'}])
        competences = Competence.get_or_clone_for_term(self.class_subject, 2025, 'T1')
        self.assertEqual([c.name for c in competences], ['Numbers'])

    def test_no_source_gives_empty_set(self):
        self.assertEqual(Competence.get_or_clone_for_term(self.class_subject, 2025, 'T2'), [])


class AssessmentModelTests(AcademicsTestCase):

    def test_total_and_pass(self):
        class_obj = self.create_class('S2')
        student = self.create_student('Amos', 'ADM-1', class_obj)
        class_subject = ClassSubject.objects.create(
            class_assigned=class_obj, subject=Subject.objects.create(name='Physics'), year=2025
        )
        assessment = Assessment.objects.create(
            student=student, class_subject=class_subject, year=2025, term='T3',
            project_score=Decimal('90'), continuous_score=Decimal('20'), eot_score=Decimal('30'),
        )
        self.assertEqual(assessment.total, Decimal('50'))
        self.assertTrue(assessment.passed)

        assessment.eot_score = Decimal('29.99')
        self.assertFalse(assessment.passed)


# =============================================================================
# UTILS TESTS
# =============================================================================

class SetupValidationTests(SimpleTestCase):

    def assertInvalid(self, subjects, message):
        with self.assertRaises(ValidationError) as ctx:
            validate_setup_subjects(subjects)
        self.assertIn(message, ctx.exception.messages[0])

    def test_requires_subjects(self):
        self.assertInvalid([], 'At least one subject is required')

    def test_requires_core_subject(self):
        self.assertInvalid([{'subject_name': 'Art', 'is_core': False}], 'At least one core subject is required')

    def test_requires_subject_name(self):
        self.assertInvalid([{'subject_name': '  ', 'is_core': True}], 'Subject name is required')

    def test_competence_checks(self):
        self.assertInvalid(
            [{'subject_name': 'Maths', 'is_core': True, 'competences': [{'name': ''}]}],
            'Competence name is required in Maths'
        )
        self.assertInvalid(
            [{'subject_name': 'Maths', 'is_core': True, 'competences': [{'name': 'A', 'max_score': 101}]}],
            'Invalid max score for competence in Maths'
        )

    def test_duplicate_names_case_insensitive(self):
        self.assertInvalid(
            [{'subject_name': 'Maths', 'is_core': True}, {'subject_name': 'maths', 'is_core': False}],
            'Duplicate subject name'
        )

    def test_valid_payload(self):
        validate_setup_subjects([
            {'subject_name': 'Maths', 'is_core': True, 'competences': [{'name': 'Algebra', 'max_score': 0}]},
            {'subject_name': 'Art', 'is_core': False},
        ])


class SetupClassSubjectsTests(AcademicsTestCase):

    def test_setup_creates_subjects_and_term_one_competences(self):
        class_obj = self.create_class('S3', 'B')
        allocations = setup_class_subjects(class_obj, 2025, [
            {
                'subject_name': 'Biology',
                'is_core': True,
                'instructor_id': str(self.teacher.pk),
                'competences': [{'name': 'Cells', 'max_score': 5}],
            },
            {'subject_name': 'Music', 'is_core': False},
        ])

        self.assertEqual(len(allocations), 2)
        biology = allocations[0]
        self.assertEqual(biology.instructor, self.teacher)
        self.assertEqual(biology.instructor_initials, 'JO')
        self.assertEqual(biology.instructor_name, 'John Okello')
        self.assertEqual(allocations[1].instructor_name, 'Not assigned')
        comps = list(Competence.objects.for_term(biology, 2025, 'T1'))
        self.assertEqual([(c.name, c.max_score) for c in comps], [('Cells', 5)])

        status = class_setup_status(class_obj, 2025, 'T1')
        self.assertTrue(status['is_setup'])
        self.assertFalse(status['has_instructors'])
        self.assertEqual(status['core_subjects_count'], 1)
        self.assertEqual(status['elective_subjects_count'], 1)

    def test_unknown_instructor_rejected(self):
        class_obj = self.create_class('S3', 'B')
        with self.assertRaises(ValidationError):
            setup_class_subjects(class_obj, 2025, [{
                'subject_name': 'Biology', 'is_core': True,
                'instructor_id': '00000000-0000-0000-0000-000000000000',
            }])
        self.assertFalse(ClassSubject.objects.exists())


class CloneFromPreviousYearTests(AcademicsTestCase):

    def test_subjects_and_latest_competences_carried_over(self):
        old_class = self.create_class('S1', 'A')
        new_class = self.create_class('S2', 'A')
        source = ClassSubject.objects.create(
            class_assigned=old_class, subject=Subject.objects.create(name='Chemistry'),
            year=2024, instructor=self.teacher, instructor_initials='JO'
        )
        Competence.replace_for_term(source, 2024, 'T1', [{'name': 'Atoms'}])
        Competence.replace_for_term(source, 2024, 'T3', [{'name': 'Bonds'}, {'name': 'Acids'}])

        carried = clone_competencies_from_previous_year(new_class, old_class, 2024, 2025)

        self.assertEqual(carried, 1)
        target = ClassSubject.objects.get(class_assigned=new_class, year=2025)
        self.assertEqual(target.instructor, self.teacher)
        names = list(Competence.objects.for_term(target, 2025, 'T1').values_list('name', flat=True))
        self.assertEqual(names, ['Bonds', 'Acids'])

        # Second run leaves existing subjects alone
        self.assertEqual(clone_competencies_from_previous_year(new_class, old_class, 2024, 2025), 0)


class ClassSummaryTests(AcademicsTestCase):

    def test_counts_by_gender_and_status(self):
        class_obj = self.create_class('S1')
        self.create_student('A', 'ADM-1', class_obj, gender='M')
        self.create_student('B', 'ADM-2', class_obj, gender='F')
        third = self.create_student('C', 'ADM-3', class_obj, gender='F')
        Enrollment.objects.filter(student=third).update(status=Enrollment.Status.REPEATED)

        summary = class_summary(class_obj, self.current_year)
        self.assertEqual(summary['total_students'], 3)
        self.assertEqual(summary['by_gender'], {'male': 1, 'female': 2, 'other': 0})
        self.assertEqual(summary['by_status'], {'initial': 2, 'promoted': 0, 'repeated': 1})


# =============================================================================
# VIEW TESTS
# =============================================================================

class ClassViewTests(AcademicsTestCase):

    def test_create_class(self):
        response = self.post_json(reverse('academics:classes'), {'rank': 's5', 'stream': 'Sciences'})
        self.assertEqual(response.status_code, 201)
        data = response.json()['class']
        self.assertEqual(data['name'], 'S.5 Sciences')
        self.assertEqual(data['level'], 'A')
        self.assertEqual(data['status'], 'active')

    def test_create_a_level_without_stream_rejected(self):
        response = self.post_json(reverse('academics:classes'), {'rank': 'S5'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('stream', response.json()['errors'])
        self.assertFalse(Class.objects.exists())

    def test_create_invalid_rank_rejected(self):
        response = self.post_json(reverse('academics:classes'), {'rank': 'P7'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('rank', response.json()['errors'])

    def test_list_classes(self):
        self.create_class('S1', 'A')
        self.create_class('S5', 'Arts')
        response = self.client.get(reverse('academics:classes'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([c['name'] for c in response.json()['classes']], ['S.1 A', 'S.5 Arts'])

    def test_update_class_recomputes_name(self):
        class_obj = self.create_class('S2', 'A')
        response = self.patch_json(
            reverse('academics:class_detail', args=[class_obj.pk]),
            {'stream': 'B', 'class_teacher_id': str(self.teacher.pk)}
        )
        self.assertEqual(response.status_code, 200)
        class_obj.refresh_from_db()
        self.assertEqual(class_obj.name, 'S.2 B')
        self.assertEqual(class_obj.class_teacher, self.teacher)

    def test_delete_is_soft(self):
        class_obj = self.create_class('S2', 'A')
        response = self.client.delete(reverse('academics:class_detail', args=[class_obj.pk]))
        self.assertEqual(response.status_code, 200)
        class_obj.refresh_from_db()
        self.assertFalse(class_obj.is_active)

    def test_assign_teacher(self):
        class_obj = self.create_class('S4')
        response = self.patch_json(
            reverse('academics:class_assign_teacher', args=[class_obj.pk]),
            {'class_teacher_id': str(self.teacher.pk)}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['class']['class_teacher']['email'], 'teacher@school.com')

    def test_export_returns_workbook(self):
        class_obj = self.create_class('S1', 'A')
        self.create_student('Amos', 'ADM-1', class_obj)
        response = self.client.get(reverse('academics:class_export', args=[class_obj.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response['Content-Type'],
            'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
        )
        self.assertIn('attachment;', response['Content-Disposition'])

    def test_anonymous_gets_401(self):
        self.client.logout()
        response = self.client.get(reverse('academics:classes'))
        self.assertEqual(response.status_code, 401)


class TeacherAccessTests(AcademicsTestCase):

    def setUp(self):
        super().setUp()
        self.teacher_user = User.objects.create_teacher(email='t@school.com', password='Testpass123')
        self.teacher.user = self.teacher_user
        self.teacher.save()
        self.own_class = self.create_class('S1', 'A')
        self.own_class.class_teacher = self.teacher
        self.own_class.save()
        self.other_class = self.create_class('S1', 'B')
        self.client.force_login(self.teacher_user)

    def test_teacher_cannot_list_all_classes(self):
        response = self.client.get(reverse('academics:classes'))
        self.assertEqual(response.status_code, 403)

    def test_my_classes_limited_to_assignments(self):
        response = self.client.get(reverse('academics:my_classes'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([c['id'] for c in response.json()['classes']], [self.own_class.pk])

    def test_teacher_cannot_view_unrelated_class(self):
        response = self.client.get(reverse('academics:class_detail', args=[self.other_class.pk]))
        self.assertEqual(response.status_code, 403)


class CatalogueViewTests(AcademicsTestCase):

    def test_ranks(self):
        response = self.client.get(reverse('academics:ranks'))
        ranks = response.json()['ranks']
        self.assertEqual(len(ranks), 6)
        self.assertEqual(ranks[4], {
            'rank': 'S5', 'level': 'A', 'description': 'Senior 5 (A-Level)', 'requires_stream': True,
        })

    def test_streams(self):
        response = self.client.get(reverse('academics:streams'), {'rank': 'S6'})
        self.assertEqual([s['value'] for s in response.json()['streams']], ['Sciences', 'Arts'])

    def test_preview(self):
        response = self.client.get(reverse('academics:class_preview'), {'rank': 'S4', 'stream': 'C'})
        data = response.json()
        self.assertEqual(data['name'], 'S.4 C')
        self.assertEqual(data['level'], 'O')
        self.assertEqual(data['next_rank'], 'S5')

    def test_terms(self):
        response = self.client.get(reverse('academics:terms'))
        self.assertEqual(response.json()['terms'][1], {'value': 'T2', 'label': 'Term 2'})


class SubjectViewTests(AcademicsTestCase):

    def setUp(self):
        super().setUp()
        self.class_obj = self.create_class('S3', 'A')

    def test_setup_then_read_term_two_clones_competences(self):
        url = reverse('academics:class_subjects', args=[self.class_obj.pk])
        response = self.post_json(url, {
            'year': 2025,
            'subjects': [{
                'subject_name': 'Geography', 'is_core': True,
                'competences': [{'name': 'Maps', 'max_score': 4}],
            }],
        })
        self.assertEqual(response.status_code, 201)

        response = self.client.get(url, {'year': 2025, 'term': 'T2'})
        self.assertEqual(response.status_code, 200)
        subject = response.json()['subjects'][0]
        self.assertEqual([c['name'] for c in subject['competences']], ['Maps'])
        self.assertEqual(subject['competences'][0]['term'], 'T2')

    def test_setup_validation_error(self):
        url = reverse('academics:class_subjects', args=[self.class_obj.pk])
        response = self.post_json(url, {'year': 2025, 'subjects': [{'subject_name': 'Art', 'is_core': False}]})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'At least one core subject is required')

    def test_replace_competences(self):
        class_subject = ClassSubject.objects.create(
            class_assigned=self.class_obj, subject=Subject.objects.create(name='History'), year=2025
        )
        url = reverse('academics:class_subject_competences', args=[class_subject.pk])
        response = self.put_json(url, {
            'year': 2025, 'term': 'T1',
            'competences': [{'name': 'Empires', 'idx': 2}, {'name': 'Trade', 'idx': 1, 'max_score': 6}],
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            [(c['idx'], c['name']) for c in response.json()['competences']],
            [(1, 'Trade'), (2, 'Empires')]
        )

    def test_replace_competences_rejects_bad_score(self):
        class_subject = ClassSubject.objects.create(
            class_assigned=self.class_obj, subject=Subject.objects.create(name='History'), year=2025
        )
        url = reverse('academics:class_subject_competences', args=[class_subject.pk])
        response = self.put_json(url, {'year': 2025, 'term': 'T1', 'competences': [{'name': 'X', 'max_score': 500}]})
        self.assertEqual(response.status_code, 400)

    def test_update_instructor_defaults_initials(self):
        class_subject = ClassSubject.objects.create(
            class_assigned=self.class_obj, subject=Subject.objects.create(name='History'), year=2025
        )
        response = self.patch_json(
            reverse('academics:class_subject_instructor', args=[class_subject.pk]),
            {'instructor_id': str(self.teacher.pk)}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['class_subject']['instructor_initials'], 'JO')

    def test_setup_rejects_malformed_entries(self):
        url = reverse('academics:class_subjects', args=[self.class_obj.pk])
        payloads = [
            {'subjects': ['Mathematics']},
            {'subjects': [{'subject_name': 42, 'is_core': True}]},
            {'subjects': [{'subject_name': 'Mathematics', 'is_core': True, 'competences': ['Algebra']}]},
            {'subjects': [{'subject_name': 'Mathematics', 'is_core': True, 'competences': 'Algebra'}]},
            {'subjects': [{'subject_name': 'Mathematics', 'is_core': True, 'instructor_id': 'abc'}]},
        ]
        for payload in payloads:
            with self.subTest(payload=payload):
                response = self.post_json(url, payload)
                self.assertEqual(response.status_code, 400)
                self.assertIn('error', response.json())
        self.assertFalse(ClassSubject.objects.filter(class_assigned=self.class_obj).exists())

    def test_setup_reports_field_errors_of_bad_subject(self):
        url = reverse('academics:class_subjects', args=[self.class_obj.pk])
        response = self.post_json(url, {'subjects': [{'subject_name': 42, 'is_core': True}]})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Invalid subject #1')
        self.assertIn('subject_name', response.json()['errors'])

    def test_setup_accepts_text_idx_mixed_with_missing_idx(self):
        url = reverse('academics:class_subjects', args=[self.class_obj.pk])
        response = self.post_json(url, {
            'year': 2025,
            'subjects': [{
                'subject_name': 'Mathematics', 'is_core': True,
                'competences': [{'name': 'Algebra', 'idx': '2'}, {'name': 'Geometry'}],
            }],
        })
        self.assertEqual(response.status_code, 201)
        competences = response.json()['subjects'][0]['competences']
        self.assertEqual([(c['idx'], c['name']) for c in competences], [(1, 'Algebra'), (2, 'Geometry')])

    def test_setup_rejects_non_numeric_idx(self):
        url = reverse('academics:class_subjects', args=[self.class_obj.pk])
        response = self.post_json(url, {
            'subjects': [{
                'subject_name': 'Mathematics', 'is_core': True,
                'competences': [{'name': 'Algebra', 'idx': 'first'}],
            }],
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn('idx', response.json()['errors'])

    def test_replace_competences_rejects_non_object_rows(self):
        class_subject = ClassSubject.objects.create(
            class_assigned=self.class_obj, subject=Subject.objects.create(name='History'), year=2025
        )
        url = reverse('academics:class_subject_competences', args=[class_subject.pk])
        response = self.put_json(url, {'year': 2025, 'term': 'T1', 'competences': ['Empires']})
        self.assertEqual(response.status_code, 400)

    def test_update_instructor_rejects_malformed_id(self):
        class_subject = ClassSubject.objects.create(
            class_assigned=self.class_obj, subject=Subject.objects.create(name='History'), year=2025
        )
        url = reverse('academics:class_subject_instructor', args=[class_subject.pk])
        for value in ('abc', 17, ['x']):
            with self.subTest(value=value):
                response = self.patch_json(url, {'instructor_id': value})
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()['error'], 'instructor_id must be a teacher id')

    def test_clone_rejects_malformed_source_class(self):
        url = reverse('academics:clone_competences', args=[self.class_obj.pk])
        for value in ('abc', {'id': 1}):
            with self.subTest(value=value):
                response = self.post_json(url, {'from_class_id': value, 'next_year': 2025})
                self.assertEqual(response.status_code, 404)
                self.assertEqual(response.json()['error'], 'Source class not found')


class AssessmentViewTests(AcademicsTestCase):

    def setUp(self):
        super().setUp()
        self.class_obj = self.create_class('S2', 'A')
        self.class_subject = ClassSubject.objects.create(
            class_assigned=self.class_obj, subject=Subject.objects.create(name='English'), year=2025
        )
        self.student = self.create_student('Ruth', 'ADM-9', self.class_obj)
        self.outsider = self.create_student('Paul', 'ADM-10')

    def test_bulk_upsert(self):
        url = reverse('academics:class_subject_assessments', args=[self.class_subject.pk])
        response = self.post_json(url, {
            'year': 2025, 'term': 'T3',
            'assessments': [
                {'student_id': self.student.pk, 'continuous_score': 30, 'eot_score': 45.5},
                {'student_id': self.outsider.pk, 'continuous_score': 10},
            ],
        })
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['created'], 1)
        self.assertEqual(len(data['errors']), 1)

        response = self.post_json(url, {
            'year': 2025, 'term': 'T3',
            'assessments': [{'student_id': self.student.pk, 'eot_score': 50}],
        })
        self.assertEqual(response.json()['updated'], 1)
        assessment = Assessment.objects.get(student=self.student)
        self.assertEqual(assessment.continuous_score, Decimal('30'))
        self.assertEqual(assessment.total, Decimal('80'))

    def test_class_assessments_filtered_by_subject(self):
        Assessment.objects.create(
            student=self.student, class_subject=self.class_subject, year=2025, term='T1',
            continuous_score=Decimal('10'), eot_score=Decimal('20'),
        )
        url = reverse('academics:class_assessments', args=[self.class_obj.pk])
        response = self.client.get(url, {'year': 2025, 'term': 'T1', 'subject': 'english'})
        self.assertEqual(len(response.json()['assessments']), 1)
        response = self.client.get(url, {'year': 2025, 'term': 'T1', 'subject': 'Physics'})
        self.assertEqual(response.json()['assessments'], [])


class RolloverTaskTests(AcademicsTestCase):

    def test_task_carries_subjects(self):
        from academics.tasks import rollover_class_subjects

        old_class = self.create_class('S1', 'A')
        new_class = self.create_class('S2', 'A')
        ClassSubject.objects.create(class_assigned=old_class, subject=Subject.objects.create(name='Art'), year=2025)

        result = rollover_class_subjects.apply(args=(new_class.pk, old_class.pk, 2025, 2026)).get()
        self.assertEqual(result, {'success': True, 'carried': 1})

    def test_task_missing_class(self):
        from academics.tasks import rollover_class_subjects

        result = rollover_class_subjects.apply(args=(999, 998, 2025, 2026)).get()
        self.assertFalse(result['success'])

    def test_schedule_rollover_queues_each_target(self):
        from academics.tasks import schedule_rollover

        source = self.create_class('S1', 'A')
        result = {'results': {
            'promoted': [{'to_class_id': 7}, {'to_class_id': 7}],
            'repeated': [{'to_class_id': source.pk}],
            'graduated': [], 'errors': [],
        }}
        with mock.patch('academics.tasks.rollover_class_subjects.delay') as delay:
            queued = schedule_rollover(result, source, 2025, 2026)
        self.assertEqual(queued, sorted({7, source.pk}))
        self.assertEqual(delay.call_count, 2)


class SeedAcademicsCommandTests(TestCase):

    def test_seeds_years_subjects_and_classes(self):
        from io import StringIO
        from django.core.management import call_command

        call_command('seed_academics', '--year', '2025', '--streams', 'A', 'B', stdout=StringIO())

        self.assertEqual(AcademicYear.get_current().year, 2025)
        self.assertTrue(AcademicYear.objects.filter(year=2026).exists())
        self.assertTrue(Subject.objects.filter(name='Mathematics', is_core=True).exists())
        self.assertEqual(
            sorted(Class.objects.values_list('name', flat=True)),
            sorted([
                'S.1 A', 'S.1 B', 'S.2 A', 'S.2 B', 'S.3 A', 'S.3 B', 'S.4 A', 'S.4 B',
                'S.5 Arts', 'S.5 Sciences', 'S.6 Arts', 'S.6 Sciences',
            ])
        )

    def test_rerun_is_idempotent(self):
        from io import StringIO
        from django.core.management import call_command

        call_command('seed_academics', stdout=StringIO())
        count = Class.objects.count()
        call_command('seed_academics', stdout=StringIO())
        self.assertEqual(Class.objects.count(), count)
