"""
Utility functions for the academics module: class subject setup,
setup status, class summaries and competency roll-over between years.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Q

from core.choices import Term
from .config import config

logger = logging.getLogger(__name__)


def validate_setup_subject(subject):
    """
    Validate one subject entry of a class setup payload.

    Args:
        subject: dict with 'subject_name', optional 'is_core',
                 'instructor_id', 'instructor_initials', 'competences'

    Raises:
        ValidationError describing the first problem found
    """
    name = subject.get('subject_name')
    if not isinstance(name, str) or not name.strip():
        raise ValidationError('Subject name is required')
    name = name.strip()

    min_score = config.COMPETENCE_MIN_SCORE
    max_score = config.COMPETENCE_MAX_SCORE
    for comp in subject.get('competences') or []:
        if not isinstance(comp, dict):
            raise ValidationError(f'Invalid competence in {name}')
        comp_name = comp.get('name')
        if not isinstance(comp_name, str) or not comp_name.strip():
            raise ValidationError(f'Competence name is required in {name}')
        score = comp.get('max_score')
        if score is not None and score != 0:
            try:
                score = int(score)
            except (TypeError, ValueError):
                raise ValidationError(f'Invalid max score for competence in {name}')
            if score < min_score or score > max_score:
                raise ValidationError(f'Invalid max score for competence in {name}')


def validate_setup_subjects(subjects):
    """
    Validate a whole setup payload.

    Rules: at least one subject, at least one core subject, each subject
    valid, and no duplicate names (case-insensitive).
    """
    if not subjects:
        raise ValidationError('At least one subject is required')

    if not all(isinstance(s, dict) for s in subjects):
        raise ValidationError('Each subject must be an object')

    if not any(s.get('is_core') for s in subjects):
        raise ValidationError('At least one core subject is required')

    for subject in subjects:
        validate_setup_subject(subject)

    seen = set()
    for subject in subjects:
        key = subject['subject_name'].strip().lower()
        if key in seen:
            raise ValidationError(f'Duplicate subject name: {key}')
        seen.add(key)


def setup_class_subjects(class_obj, year, subjects):
    """
    Create or update the subjects of a class for a year.

    Competences supplied with a subject are stored for Term 1; later terms
    inherit them on first access.

    Returns:
        List of ClassSubject instances, in payload order
    """
    from teachers.models import Teacher
    from .models import ClassSubject, Competence, Subject

    validate_setup_subjects(subjects)

    instructor_ids = {s['instructor_id'] for s in subjects if s.get('instructor_id')}
    instructors = {str(t.pk): t for t in Teacher.objects.filter(pk__in=instructor_ids)}
    missing = {str(pk) for pk in instructor_ids} - set(instructors)
    if missing:
        raise ValidationError(f"Unknown instructor: {sorted(missing)[0]}")

    results = []
    with transaction.atomic():
        for entry in subjects:
            name = entry['subject_name'].strip()
            is_core = bool(entry.get('is_core'))

            subject = Subject.objects.filter(name__iexact=name).first()
            if subject is None:
                subject = Subject.objects.create(name=name, is_core=is_core)

            instructor = instructors.get(str(entry.get('instructor_id'))) if entry.get('instructor_id') else None
            initials = entry.get('instructor_initials') or (instructor.initials if instructor else '')

            class_subject, created = ClassSubject.objects.update_or_create(
                class_assigned=class_obj,
                subject=subject,
                year=year,
                defaults={
                    'is_core': is_core,
                    'is_active': True,
                    'instructor': instructor,
                    'instructor_initials': initials[:5],
                }
            )

            competences = entry.get('competences') or []
            if competences:
                Competence.replace_for_term(class_subject, year, Term.TERM_1, competences)

            results.append(class_subject)

    logger.info(f"Set up {len(results)} subject(s) for {class_obj.name} ({year})")
    return results


def subjects_breakdown(class_subjects):
    """Count total, core and elective subjects."""
    class_subjects = list(class_subjects)
    core = sum(1 for cs in class_subjects if cs.is_core)
    return {
        'total': len(class_subjects),
        'core': core,
        'elective': len(class_subjects) - core,
    }


def class_setup_status(class_obj, year, term):
    """Whether a class has subjects (and instructors) for a year/term."""
    from .models import Competence

    class_subjects = list(
        class_obj.class_subjects.filter(year=year, is_active=True)
        .select_related('subject', 'instructor')
    )
    breakdown = subjects_breakdown(class_subjects)

    subjects = []
    for cs in class_subjects:
        competences = Competence.objects.for_term(cs, year, term)
        subjects.append(cs.to_dict(competences=competences))

    return {
        'class_id': class_obj.pk,
        'year': year,
        'term': term,
        'is_setup': breakdown['total'] > 0,
        'has_instructors': bool(class_subjects) and all(cs.has_instructor for cs in class_subjects),
        'total_subjects': breakdown['total'],
        'core_subjects_count': breakdown['core'],
        'elective_subjects_count': breakdown['elective'],
        'subjects': subjects,
    }


def class_summary(class_obj, academic_year):
    """
    Student counts of a class for an academic year, by gender and by
    enrollment outcome.
    """
    from students.models import Enrollment
    from core.choices import Gender

    enrollments = Enrollment.objects.filter(class_assigned=class_obj, academic_year=academic_year)
    counts = enrollments.aggregate(
        total=Count('id'),
        male=Count('id', filter=Q(student__gender=Gender.MALE)),
        female=Count('id', filter=Q(student__gender=Gender.FEMALE)),
        initial=Count('id', filter=Q(status=Enrollment.Status.ACTIVE)),
        promoted=Count('id', filter=Q(status__in=[
            Enrollment.Status.PROMOTED, Enrollment.Status.GRADUATED
        ])),
        repeated=Count('id', filter=Q(status=Enrollment.Status.REPEATED)),
    )
    total = counts['total'] or 0
    male = counts['male'] or 0
    female = counts['female'] or 0

    return {
        'total_students': total,
        'by_gender': {
            'male': male,
            'female': female,
            'other': total - male - female,
        },
        'by_status': {
            'initial': counts['initial'] or 0,
            'promoted': counts['promoted'] or 0,
            'repeated': counts['repeated'] or 0,
        },
    }


def clone_competencies_from_previous_year(class_obj, old_class, previous_year, next_year):
    """
    Carry an old class's subjects into a class for the next year.

    Each subject keeps its core flag and instructor; its most recently edited
    competence set of the previous year becomes Term 1 of the next year.
    Subjects already set up for next year are left untouched.

    Returns:
        Number of subjects carried over
    """
    from .models import ClassSubject, Competence

    carried = 0
    sources = ClassSubject.objects.filter(
        class_assigned=old_class, year=previous_year, is_active=True
    ).select_related('subject', 'instructor')

    with transaction.atomic():
        for source in sources:
            target, created = ClassSubject.objects.get_or_create(
                class_assigned=class_obj,
                subject=source.subject,
                year=next_year,
                defaults={
                    'is_core': source.is_core,
                    'instructor': source.instructor,
                    'instructor_initials': source.instructor_initials,
                }
            )
            if not created:
                continue

            latest = Competence.latest_source(source, year=previous_year)
            if latest is not None:
                Competence.copy_set(source, latest[0], latest[1], target, next_year, Term.TERM_1)
            carried += 1

    logger.info(
        f"Carried {carried} subject(s) from {old_class.name} ({previous_year}) "
        f"to {class_obj.name} ({next_year})"
    )
    return carried
