"""Domain modules package."""

from app.modules.audit import models as audit_models  # noqa: F401
from app.modules.contracts import models as contracts_models  # noqa: F401
from app.modules.identity import models as identity_models  # noqa: F401
from app.modules.lessons import models as lessons_models  # noqa: F401
from app.modules.notifications import models as notifications_models  # noqa: F401
from app.modules.students import models as students_models  # noqa: F401
from app.modules.teachers import models as teachers_models  # noqa: F401
from app.modules.trials import models as trials_models  # noqa: F401
