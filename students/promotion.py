"""
End-of-year promotion workflow.

A class's students are judged on their Term 3 results: a student whose
average subject total reaches the pass mark qualifies for promotion to a
class of the next rank; others repeat. S6 classes graduate instead of
moving up. Decisions are recorded on the year's Enrollment and, for
promotions and repeats, a new Enrollment is opened in the next year.
"""
import logging
from collections import defaultdict
from decimal import Decimal, ROUND_HALF_UP

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Q

from academics.config import config
from academics.models import Assessment, Class, ClassSubject
from academics.taxonomy import (
    format_rank_display, is_o_to_a_level_transition, level_from_rank, promotion_for,
    promotion_rank_display,
)
from core.models import AcademicYear
from .models import Enrollment, Student

logger = logging.getLogger(__name__)

PROMOTE = 'PROMOTE'
REPEAT = 'REPEAT'
ACTIONS = (PROMOTE, REPEAT)

PENDING = 'PENDING'
PROMOTED = 'PROMOTED'
REPEATED = 'REPEATED'

_STATUS_DISPLAY = {
    PENDING: {'text': 'Pending', 'color': 'gray'},
    PROMOTED: {'text': 'Promoted', 'color': 'green'},
    REPEATED: {'text': 'Repeating', 'color': 'amber'},
}

_TWO_PLACES = Decimal('0.01')


def format_promotion_status(status):
    return _STATUS_DISPLAY.get(status, {'text': status, 'color': 'gray'})


def promotion_status_of(enrollment):
    """Map an enrollment status onto PENDING / PROMOTED / REPEATED."""
    if enrollment.status in (Enrollment.Status.PROMOTED, Enrollment.Status.GRADUATED):
        return PROMOTED
    if enrollment.status == Enrollment.Status.REPEATED:
        return REPEATED
    return PENDING


def _next_enrollment(enrollment):
    return enrollment.promoted_to.select_related('class_assigned', 'academic_year').first()


def available_years():
    years = AcademicYear.objects.order_by('-year')
    return [{'id': y.pk, 'year': y.year, 'is_current': y.is_current} for y in years]


def next_level_info(class_obj):
    """
    Where a class's students go next: the next rank, the classes of that
    rank and a suggested target.

    The suggestion is the active class of the next rank with the same
    stream, otherwise the only class of that rank when there is exactly one.
    """
    outcome = promotion_for(class_obj.rank)
    next_rank = outcome.next_rank

    available = []
    suggested = None
    if next_rank is not None:
        candidates = Class.objects.filter(rank=next_rank, is_active=True).select_related(
            'class_teacher'
        ).annotate(
            student_count=Count('students', filter=Q(students__status=Student.Status.ACTIVE))
        ).order_by('stream')

        for candidate in candidates:
            available.append({
                'id': candidate.pk,
                'name': candidate.name,
                'level': candidate.level,
                'rank': candidate.rank,
                'stream': candidate.stream or None,
                'class_teacher': {
                    'id': str(candidate.class_teacher.pk),
                    'name': candidate.class_teacher.full_name,
                } if candidate.class_teacher_id else None,
                'student_count': candidate.student_count,
            })

        same_stream = [c for c in available if c['stream'] == (class_obj.stream or None)]
        if same_stream:
            suggested = same_stream[0]
        elif len(available) == 1:
            suggested = available[0]

    if outcome.is_graduation:
        next_level_display = 'Graduation'
    elif next_rank is not None:
        next_level_display = promotion_rank_display(next_rank)
    else:
        next_level_display = 'Unknown'

    return {
        'current_class': {
            'id': class_obj.pk,
            'name': class_obj.name,
            'level': class_obj.level,
            'rank': class_obj.rank,
            'stream': class_obj.stream or None,
        },
        'next_level': level_from_rank(next_rank) if next_rank else None,
        'next_rank': next_rank.value if next_rank else None,
        'next_level_display': next_level_display,
        'is_graduating_class': outcome.is_graduation,
        'is_o_level_to_a_level': is_o_to_a_level_transition(class_obj.rank),
        'suggested_class_id': suggested['id'] if suggested else None,
        'suggested_class_name': suggested['name'] if suggested else None,
        'available_classes': available,
    }


def _scores_by_student(class_obj, year, student_ids):
    """{student_id: [Assessment, ...]} for the promotion term."""
    assessments = Assessment.objects.filter(
        class_subject__class_assigned=class_obj,
        class_subject__is_active=True,
        year=year,
        term=config.PROMOTION_TERM,
        student_id__in=student_ids,
    ).select_related('class_subject__subject')

    grouped = defaultdict(list)
    for assessment in assessments:
        grouped[assessment.student_id].append(assessment)
    return grouped


def evaluate_student(assessments):
    """
    Summarise one student's promotion-term results.

    Returns a dict with subject_scores, totals, average and pass counts.
    """
    pass_mark = Decimal(config.PROMOTION_PASS_MARK)
    subject_scores = {}
    total_score = Decimal('0')
    passed_subjects = 0

    for assessment in assessments:
        subject = assessment.class_subject.subject
        total = assessment.total
        passed = total >= pass_mark
        subject_scores[subject.name] = {
            'subject_id': subject.pk,
            'subject_name': subject.name,
            'continuous_score': float(assessment.continuous_score),
            'eot_score': float(assessment.eot_score),
            'total': float(total),
            'passed': passed,
        }
        total_score += total
        if passed:
            passed_subjects += 1

    subject_count = len(subject_scores)
    if subject_count:
        average = (total_score / subject_count).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
    else:
        average = Decimal('0.00')
    qualifies = subject_count > 0 and average >= pass_mark

    return {
        'subject_scores': subject_scores,
        'average_score': average,
        'total_score': total_score,
        'subject_count': subject_count,
        'passed_subjects': passed_subjects,
        'failed_subjects': subject_count - passed_subjects,
        'pass_status': 'PASS' if qualifies else 'FAIL',
        'qualifies_for_promotion': qualifies,
    }


def students_for_promotion(class_obj, academic_year):
    """
    Promotion candidates of a class for an academic year, with their
    Term 3 results and any decision already recorded.
    """
    enrollments = list(
        Enrollment.objects.filter(
            class_assigned=class_obj,
            academic_year=academic_year,
        ).exclude(
            status=Enrollment.Status.WITHDRAWN
        ).select_related('student').order_by('student__last_name', 'student__first_name')
    )
    scores = _scores_by_student(class_obj, academic_year.year, [e.student_id for e in enrollments])

    students = []
    for enrollment in enrollments:
        student = enrollment.student
        result = evaluate_student(scores.get(student.pk, []))
        next_enrollment = _next_enrollment(enrollment) if enrollment.is_processed else None

        students.append({
            'id': student.pk,
            'enrollment_id': str(enrollment.pk),
            'first_name': student.first_name,
            'last_name': student.last_name,
            'full_name': student.full_name,
            'gender': student.gender,
            'average_score': float(result['average_score']),
            'total_score': float(result['total_score']),
            'subject_count': result['subject_count'],
            'passed_subjects': result['passed_subjects'],
            'failed_subjects': result['failed_subjects'],
            'pass_status': result['pass_status'],
            'subject_scores': result['subject_scores'],
            'promotion_status': promotion_status_of(enrollment),
            'promotion_remarks': enrollment.remarks or None,
            'promoted_to_class_id': next_enrollment.class_assigned_id if next_enrollment else None,
            'promoted_to_class_name': next_enrollment.class_assigned.name if next_enrollment else None,
            'is_already_processed': enrollment.is_processed,
            'qualifies_for_promotion': result['qualifies_for_promotion'],
        })

    subjects = ClassSubject.objects.filter(
        class_assigned=class_obj, year=academic_year.year, is_active=True
    ).select_related('subject')
    next_year = academic_year.get_next()
    processed = sum(1 for s in students if s['is_already_processed'])
    passing = sum(1 for s in students if s['qualifies_for_promotion'])

    return {
        'class_id': class_obj.pk,
        'class_name': class_obj.name,
        'class_level': class_obj.level,
        'class_rank': class_obj.rank,
        'year': academic_year.year,
        'term': config.PROMOTION_TERM,
        'total_students': len(students),
        'passing_students': passing,
        'failing_students': len(students) - passing,
        'already_processed': processed,
        'pending_decisions': len(students) - processed,
        'subjects': [
            {'id': cs.subject_id, 'name': cs.subject.name, 'is_core': cs.is_core}
            for cs in subjects
        ],
        'students': students,
        'next_level_info': next_level_info(class_obj),
        'next_academic_year': {'id': next_year.pk, 'year': next_year.year} if next_year else None,
        'can_process': next_year is not None,
    }


def default_decisions(students, suggested_class_id, current_class_id):
    """Promote qualifying students to the suggested class; others repeat."""
    decisions = []
    for student in students:
        if student['qualifies_for_promotion']:
            decisions.append({
                'student_id': student['id'],
                'action': PROMOTE,
                'to_class_id': suggested_class_id,
                'remarks': 'Auto-promote based on qualifying grade',
            })
        else:
            decisions.append({
                'student_id': student['id'],
                'action': REPEAT,
                'to_class_id': current_class_id,
                'remarks': 'Auto-repeat based on non-qualifying grade',
            })
    return decisions


def process_promotions(class_obj, academic_year, next_year, decisions):
    """
    Apply promotion decisions for a class.

    Args:
        class_obj: the class being promoted from
        academic_year: AcademicYear whose results are being acted on
        next_year: AcademicYear receiving the new enrollments (may be None
                   only when every decision is a graduation)
        decisions: list of dicts with student_id, action (PROMOTE/REPEAT),
                   optional to_class_id and remarks

    Returns:
        dict with message, summary counts and per-bucket results. Invalid
        decisions are reported in results['errors'] and skipped.
    """
    outcome = promotion_for(class_obj.rank)

    enrollments = {
        e.student_id: e for e in Enrollment.objects.filter(
            class_assigned=class_obj,
            academic_year=academic_year,
        ).select_related('student')
    }
    target_ids = [d.get('to_class_id') for d in decisions if d.get('to_class_id')]
    targets = {c.pk: c for c in Class.objects.filter(pk__in=target_ids, is_active=True)}
    already_next_year = set()
    if next_year is not None:
        already_next_year = set(Enrollment.objects.filter(
            academic_year=next_year,
            student_id__in=list(enrollments),
        ).values_list('student_id', flat=True))
    scores = _scores_by_student(class_obj, academic_year.year, list(enrollments))

    results = {'promoted': [], 'repeated': [], 'graduated': [], 'errors': []}
    enrollments_to_update = []
    enrollments_to_create = []
    students_to_update = []

    for decision in decisions:
        student_id = decision.get('student_id')
        action = str(decision.get('action', '')).upper()
        remarks = decision.get('remarks') or ''

        try:
            student_id = int(student_id)
        except (TypeError, ValueError):
            results['errors'].append({'student_id': student_id, 'error': 'Invalid student id'})
            continue

        enrollment = enrollments.get(student_id)
        if enrollment is None:
            results['errors'].append({'student_id': student_id, 'error': 'Student is not enrolled in this class'})
            continue
        student = enrollment.student

        if enrollment.is_processed:
            results['errors'].append({'student_id': student_id, 'error': f'{student.full_name}: already processed'})
            continue
        if action not in ACTIONS:
            results['errors'].append({'student_id': student_id, 'error': f'{student.full_name}: unknown action "{action}"'})
            continue

        graduating = action == PROMOTE and outcome.is_graduation
        if not graduating:
            if next_year is None:
                results['errors'].append({'student_id': student_id, 'error': f'{student.full_name}: no next academic year'})
                continue
            if student_id in already_next_year:
                results['errors'].append({
                    'student_id': student_id,
                    'error': f'{student.full_name}: already enrolled for {next_year.year}',
                })
                continue

        enrollment.average_score = evaluate_student(scores.get(student_id, []))['average_score']

        if graduating:
            enrollment.status = Enrollment.Status.GRADUATED
            enrollment.remarks = remarks or 'Graduated'
            student.status = Student.Status.GRADUATED
            student.current_class = None
            enrollments_to_update.append(enrollment)
            students_to_update.append(student)
            results['graduated'].append({'student_id': student_id, 'name': student.full_name})
            continue

        if action == PROMOTE:
            target = targets.get(_as_int(decision.get('to_class_id')))
            if target is None:
                results['errors'].append({'student_id': student_id, 'error': f'{student.full_name}: no valid target class selected'})
                continue
            if target.rank != outcome.next_rank:
                results['errors'].append({
                    'student_id': student_id,
                    'error': f'{student.full_name}: {target.name} is not a {format_rank_display(outcome.next_rank)} class',
                })
                continue

            enrollment.status = Enrollment.Status.PROMOTED
            enrollment.remarks = remarks
            enrollments_to_create.append(Enrollment(
                student=student,
                academic_year=next_year,
                class_assigned=target,
                status=Enrollment.Status.ACTIVE,
                promoted_from=enrollment,
            ))
            student.current_class = target
            results['promoted'].append({
                'student_id': student_id, 'name': student.full_name,
                'to_class_id': target.pk, 'to_class_name': target.name,
            })
        else:
            enrollment.status = Enrollment.Status.REPEATED
            enrollment.remarks = remarks
            enrollments_to_create.append(Enrollment(
                student=student,
                academic_year=next_year,
                class_assigned=class_obj,
                status=Enrollment.Status.ACTIVE,
                promoted_from=enrollment,
                remarks='Repeated year',
            ))
            student.current_class = class_obj
            results['repeated'].append({
                'student_id': student_id, 'name': student.full_name,
                'to_class_id': class_obj.pk, 'to_class_name': class_obj.name,
            })

        enrollments_to_update.append(enrollment)
        students_to_update.append(student)
        already_next_year.add(student_id)

    # Execute bulk operations atomically
    with transaction.atomic():
        if enrollments_to_update:
            Enrollment.objects.bulk_update(enrollments_to_update, ['status', 'remarks', 'average_score'])
        if enrollments_to_create:
            Enrollment.objects.bulk_create(enrollments_to_create)
        if students_to_update:
            Student.objects.bulk_update(students_to_update, ['current_class', 'status'])

    summary = {
        'promoted': len(results['promoted']),
        'repeated': len(results['repeated']),
        'graduated': len(results['graduated']),
        'errors': len(results['errors']),
        'total': len(decisions),
    }
    logger.info(
        f"Promotions for {class_obj.name} ({academic_year.year}): "
        f"{summary['promoted']} promoted, {summary['repeated']} repeated, "
        f"{summary['graduated']} graduated, {summary['errors']} error(s)"
    )
    if results['errors']:
        logger.warning(f"Promotion errors for {class_obj.name}: {results['errors']}")

    return {
        'message': f"Processed {summary['total'] - summary['errors']} of {summary['total']} decision(s)",
        'summary': summary,
        'results': results,
    }


def _as_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _reset_enrollment(enrollment):
    """Undo a recorded decision so it can be taken again."""
    with transaction.atomic():
        enrollment.promoted_to.all().delete()
        enrollment.status = Enrollment.Status.ACTIVE
        enrollment.save(update_fields=['status', 'updated_at'])
        student = enrollment.student
        student.status = Student.Status.ACTIVE
        student.current_class = enrollment.class_assigned
        student.save(update_fields=['status', 'current_class', 'updated_at'])


def teacher_override(student, from_class, action, reason, academic_year, next_year, to_class=None):
    """
    Manually promote or repeat a single student, replacing any decision
    already recorded for them. A reason is mandatory.
    """
    reason = (reason or '').strip()
    if not reason:
        raise ValidationError('A reason is required for an override')
    action = str(action or '').upper()
    if action not in ACTIONS:
        raise ValidationError(f'Unknown action "{action}"')

    enrollment = Enrollment.objects.filter(
        student=student, class_assigned=from_class, academic_year=academic_year
    ).select_related('student', 'class_assigned').first()
    if enrollment is None:
        raise ValidationError(f'{student.full_name} is not enrolled in {from_class.name} for {academic_year.year}')

    if action == PROMOTE and to_class is None:
        suggested_id = next_level_info(from_class)['suggested_class_id']
        to_class = Class.objects.filter(pk=suggested_id).first() if suggested_id else None

    with transaction.atomic():
        if enrollment.is_processed:
            logger.info(f"Override resets previous decision for {student.full_name}")
            _reset_enrollment(enrollment)

        result = process_promotions(
            from_class,
            academic_year,
            next_year,
            [{
                'student_id': student.pk,
                'action': action,
                'to_class_id': to_class.pk if to_class else None,
                'remarks': f'Teacher override: {reason}',
            }],
        )
        if result['results']['errors']:
            # Roll back the reset as well
            raise ValidationError(result['results']['errors'][0]['error'])

    return result


def promotion_stats(class_obj, academic_year):
    counts = Enrollment.objects.filter(
        class_assigned=class_obj,
        academic_year=academic_year,
    ).exclude(
        status=Enrollment.Status.WITHDRAWN
    ).aggregate(
        total=Count('id'),
        promoted=Count('id', filter=Q(status__in=[
            Enrollment.Status.PROMOTED, Enrollment.Status.GRADUATED
        ])),
        repeated=Count('id', filter=Q(status=Enrollment.Status.REPEATED)),
    )
    total = counts['total'] or 0
    promoted = counts['promoted'] or 0
    repeated = counts['repeated'] or 0
    done = promoted + repeated

    return {
        'total_students': total,
        'promoted': promoted,
        'repeated': repeated,
        'pending': total - done,
        'percentage_complete': round(done / total * 100, 1) if total else 0,
    }


def student_history(student):
    """Decisions recorded for a student, most recent year first."""
    history = []
    for enrollment in student.get_enrollment_history():
        if not enrollment.is_processed:
            continue
        if enrollment.status == Enrollment.Status.GRADUATED:
            to_class = 'Graduated'
        else:
            following = _next_enrollment(enrollment)
            to_class = following.class_assigned.name if following else ''

        history.append({
            'id': str(enrollment.pk),
            'year': enrollment.academic_year.year,
            'from_class': enrollment.class_assigned.name,
            'to_class': to_class,
            'status': enrollment.status.upper(),
            'average_score': float(enrollment.average_score) if enrollment.average_score is not None else None,
            'remarks': enrollment.remarks or None,
            'created_at': enrollment.updated_at.isoformat(),
        })
    return history
