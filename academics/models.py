import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.utils.translation import gettext_lazy as _

from core.choices import Term
from teachers.models import Teacher
from .config import config
from .taxonomy import (
    A_LEVEL_STREAMS, O_LEVEL_STREAMS, Level, Rank,
    generate_class_name, level_from_rank, rank_requires_stream,
)

logger = logging.getLogger(__name__)


class Class(models.Model):
    """
    Represents a senior class, e.g. "S.2 B" or "S.5 Sciences".

    Only rank and stream are chosen by the user; level and name are
    recomputed from them on every save:
        - S1-S4 are O-Level, stream optional (A, B, C)
        - S5-S6 are A-Level, stream required (Sciences, Arts)
    """
    rank = models.CharField(max_length=2, choices=Rank.choices)
    stream = models.CharField(
        max_length=20,
        blank=True,
        default='',
        help_text="A, B, C for O-Level; Sciences or Arts for A-Level"
    )

    # Derived from rank + stream
    level = models.CharField(max_length=1, choices=Level.choices, blank=True, editable=False)
    name = models.CharField(
        max_length=30,
        blank=True,
        editable=False,
        help_text="Auto-generated: S.1, S.2 B, S.5 Sciences"
    )

    class_teacher = models.ForeignKey(
        Teacher,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_classes',
        help_text="The class teacher responsible for this class."
    )

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['rank', 'stream']
        verbose_name = "Class"
        verbose_name_plural = "Classes"
        unique_together = ['rank', 'stream']

    def __str__(self):
        return self.name

    def clean(self):
        parsed = Rank.parse(self.rank)
        if parsed is None:
            # Reported by field validation
            return
        self.rank = parsed.value
        self.stream = (self.stream or '').strip()

        if rank_requires_stream(parsed):
            if self.stream not in A_LEVEL_STREAMS:
                raise ValidationError({
                    'stream': _('A-Level classes require a stream: Sciences or Arts.')
                })
        elif self.stream and self.stream not in O_LEVEL_STREAMS:
            raise ValidationError({
                'stream': _('O-Level stream must be one of: %(streams)s.') % {
                    'streams': ', '.join(O_LEVEL_STREAMS)
                }
            })

    def save(self, *args, **kwargs):
        parsed = Rank.parse(self.rank)
        if parsed is not None:
            self.rank = parsed.value
        self.stream = (self.stream or '').strip()
        self.level = level_from_rank(self.rank)
        self.name = generate_class_name(self.rank, self.stream)
        super().save(*args, **kwargs)

    def to_dict(self, student_count=None):
        data = {
            'id': self.pk,
            'name': self.name,
            'rank': self.rank,
            'stream': self.stream or None,
            'level': self.level,
            'status': 'active' if self.is_active else 'inactive',
            'class_teacher': None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if self.class_teacher_id:
            teacher = self.class_teacher
            data['class_teacher'] = {
                'id': str(teacher.pk),
                'first_name': teacher.first_name,
                'last_name': teacher.last_name,
                'email': teacher.email,
            }
        if student_count is not None:
            data['student_count'] = student_count
        return data


class Subject(models.Model):
    """
    Represents a subject taught at the school.
    Subjects can be core (mandatory) or elective.
    """
    name = models.CharField(
        max_length=100,
        unique=True,
        help_text="e.g., Mathematics, English Language, Physics"
    )
    is_core = models.BooleanField(
        default=True,
        help_text="Core subjects are mandatory"
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-is_core', 'name']
        verbose_name = "Subject"
        verbose_name_plural = "Subjects"

    def __str__(self):
        return self.name


class ClassSubject(models.Model):
    """
    Links a Class to a Subject for an academic year and assigns an instructor.
    Example: 'Mr. Okello' teaches 'Physics' to 'S.5 Sciences' in 2025.
    """
    class_assigned = models.ForeignKey(
        Class,
        on_delete=models.CASCADE,
        related_name='class_subjects'
    )
    subject = models.ForeignKey(
        Subject,
        on_delete=models.CASCADE,
        related_name='class_allocations'
    )
    year = models.PositiveIntegerField()
    is_core = models.BooleanField(default=True)
    is_active = models.BooleanField(default=True)

    instructor = models.ForeignKey(
        Teacher,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='subject_assignments'
    )
    instructor_initials = models.CharField(max_length=5, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-is_core', 'subject__name']
        unique_together = ['class_assigned', 'subject', 'year']
        verbose_name = "Subject Allocation"
        verbose_name_plural = "Subject Allocations"

    def __str__(self):
        return f"{self.subject.name} - {self.class_assigned.name} ({self.year})"

    @property
    def has_instructor(self):
        return bool(self.instructor_id)

    @property
    def instructor_name(self):
        if not self.instructor_id:
            return "Not assigned"
        return self.instructor.full_name

    def assign_instructor(self, teacher, initials=None):
        """Set (or clear, with None) the instructor; initials default to the teacher's."""
        self.instructor = teacher
        if teacher is None:
            self.instructor_initials = ''
        else:
            self.instructor_initials = (initials or teacher.initials)[:5]
        self.save(update_fields=['instructor', 'instructor_initials', 'updated_at'])

    def to_dict(self, competences=None):
        data = {
            'id': self.pk,
            'class_id': self.class_assigned_id,
            'subject_id': self.subject_id,
            'year': self.year,
            'is_active': self.is_active,
            'is_core': self.is_core,
            'instructor_id': str(self.instructor_id) if self.instructor_id else None,
            'instructor_name': self.instructor_name if self.instructor_id else None,
            'instructor_initials': self.instructor_initials,
            'subject': {
                'id': self.subject_id,
                'name': self.subject.name,
                'is_core': self.subject.is_core,
            },
        }
        if competences is not None:
            data['competences'] = [c.to_dict() for c in competences]
        return data


class CompetenceQuerySet(models.QuerySet):
    def for_term(self, class_subject, year, term):
        return self.filter(class_subject=class_subject, year=year, term=term).order_by('idx')


class Competence(models.Model):
    """
    A competency assessed for a class subject in one term of a year.

    Each term owns its own copy; a term that has none yet inherits the
    set of the most recently edited term (see get_or_clone_for_term).
    """
    class_subject = models.ForeignKey(
        ClassSubject,
        on_delete=models.CASCADE,
        related_name='competences'
    )
    year = models.PositiveIntegerField()
    term = models.CharField(max_length=2, choices=Term.choices)
    idx = models.PositiveSmallIntegerField(help_text="Display order within the term")
    name = models.CharField(max_length=200)
    max_score = models.PositiveSmallIntegerField(default=3)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CompetenceQuerySet.as_manager()

    class Meta:
        ordering = ['class_subject', 'year', 'term', 'idx']
        unique_together = ['class_subject', 'year', 'term', 'idx']

    def __str__(self):
        return f"{self.idx}. {self.name} ({self.get_term_display()} {self.year})"

    def to_dict(self):
        return {
            'id': self.pk,
            'class_subject_id': self.class_subject_id,
            'year': self.year,
            'term': self.term,
            'idx': self.idx,
            'name': self.name,
            'max_score': self.max_score,
        }

    @classmethod
    def latest_source(cls, class_subject, year=None):
        """(year, term) of the most recently edited competence set, or None."""
        candidates = cls.objects.filter(class_subject=class_subject)
        if year is not None:
            candidates = candidates.filter(year=year)
        latest = candidates.order_by('-updated_at', '-pk').values('year', 'term').first()
        if latest is None:
            return None
        return latest['year'], latest['term']

    @classmethod
    def copy_set(cls, source_subject, source_year, source_term, target_subject, target_year, target_term):
        """Duplicate one term's competences onto another subject/year/term."""
        source = cls.objects.for_term(source_subject, source_year, source_term)
        copies = [
            cls(
                class_subject=target_subject,
                year=target_year,
                term=target_term,
                idx=comp.idx,
                name=comp.name,
                max_score=comp.max_score,
            )
            for comp in source
        ]
        return cls.objects.bulk_create(copies)

    @classmethod
    def get_or_clone_for_term(cls, class_subject, year, term):
        """
        Competences for a term, cloning the last edited term of the same
        year when this term has none yet.
        """
        existing = list(cls.objects.for_term(class_subject, year, term))
        if existing:
            return existing

        source = cls.latest_source(class_subject, year=year)
        if source is None:
            return []

        with transaction.atomic():
            cls.copy_set(class_subject, source[0], source[1], class_subject, year, term)
        logger.info(
            f"Cloned competences for {class_subject} from {source[1]} {source[0]} into {term} {year}"
        )
        return list(cls.objects.for_term(class_subject, year, term))

    @classmethod
    def replace_for_term(cls, class_subject, year, term, competences):
        """
        Replace a term's competences.

        competences: iterable of dicts with 'name' and optional 'idx', 'max_score'.
        Supplied idx values only order the set; stored idx runs 1..n.
        """
        default_max = config.DEFAULT_COMPETENCE_MAX_SCORE
        ordered = sorted(
            enumerate(competences, start=1),
            key=lambda pair: (pair[1].get('idx') or pair[0], pair[0])
        )
        rows = []
        for position, (_original, item) in enumerate(ordered, start=1):
            rows.append(cls(
                class_subject=class_subject,
                year=year,
                term=term,
                idx=position,
                name=item['name'].strip(),
                max_score=item.get('max_score') or default_max,
            ))

        with transaction.atomic():
            cls.objects.for_term(class_subject, year, term).delete()
            created = cls.objects.bulk_create(rows)
        return created


class Assessment(models.Model):
    """
    A student's scores in one class subject for one term.
    """
    student = models.ForeignKey(
        'students.Student',
        on_delete=models.CASCADE,
        related_name='assessments'
    )
    class_subject = models.ForeignKey(
        ClassSubject,
        on_delete=models.CASCADE,
        related_name='assessments'
    )
    year = models.PositiveIntegerField()
    term = models.CharField(max_length=2, choices=Term.choices)

    project_score = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0'))
    continuous_score = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0'))
    eot_score = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal('0'),
        help_text="End of term examination score"
    )
    competence_scores = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ['student', 'class_subject', 'year', 'term']
        ordering = ['class_subject', 'student']

    def __str__(self):
        return f"{self.student} - {self.class_subject.subject.name} {self.term} {self.year}"

    @property
    def total(self):
        return self.continuous_score + self.eot_score

    @property
    def passed(self):
        return self.total >= config.PROMOTION_PASS_MARK

    def to_dict(self):
        return {
            'student_id': self.student_id,
            'subject_id': self.class_subject.subject_id,
            'subject_name': self.class_subject.subject.name,
            'year': self.year,
            'term': self.term,
            'project_score': float(self.project_score),
            'continuous_score': float(self.continuous_score),
            'eot_score': float(self.eot_score),
            'total': float(self.total),
            'competence_scores': self.competence_scores,
        }
