from .teachers import (
    teachers_collection,
    teacher_detail,
)
from .accounts import (
    create_account,
    deactivate_account,
)
