# Student views
from .students import (
    students_collection,
    student_detail,
)

# Promotion views
from .promotion import (
    promotion_years,
    promotion_next_level,
    promotion_class_students,
    promotion_default_decisions,
    promotion_stats,
    promotion_process,
    promotion_override,
    promotion_student_history,
)
