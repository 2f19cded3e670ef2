"""
Academics views package.

This package splits the views into logical modules:
- base: Common utilities, decorators, and helper functions
- classes: Class CRUD, teacher assignment, summaries, exports
- subjects: Class subject setup, instructors and competences
- assessments: Score entry
- api: Rank/stream catalogue and academic calendar endpoints
"""

# Base utilities (exported for use by other modules if needed)
from .base import (
    is_school_admin,
    admin_required,
    is_teacher_or_admin,
    teacher_or_admin_required,
)

# Classes
from .classes import (
    classes_collection,
    my_classes,
    class_detail,
    class_assign_teacher,
    class_summary_view,
    class_setup_status_view,
    class_students,
    class_export,
)

# Subjects
from .subjects import (
    subject_list,
    class_subjects,
    class_subject_instructor,
    class_subject_competences,
    clone_competences,
)

# Assessments
from .assessments import class_assessments, class_subject_assessments

# API
from .api import (
    api_ranks,
    api_streams,
    api_class_preview,
    api_years,
    api_terms,
)


__all__ = [
    # Base
    'is_school_admin',
    'admin_required',
    'is_teacher_or_admin',
    'teacher_or_admin_required',
    # Classes
    'classes_collection',
    'my_classes',
    'class_detail',
    'class_assign_teacher',
    'class_summary_view',
    'class_setup_status_view',
    'class_students',
    'class_export',
    # Subjects
    'subject_list',
    'class_subjects',
    'class_subject_instructor',
    'class_subject_competences',
    'clone_competences',
    # Assessments
    'class_assessments',
    'class_subject_assessments',
    # API
    'api_ranks',
    'api_streams',
    'api_class_preview',
    'api_years',
    'api_terms',
]
