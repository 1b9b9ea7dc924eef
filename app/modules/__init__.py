"""Domain modules package."""

from app.modules.audit import models as audit_models  # noqa: F401
from app.modules.billing import models as billing_models  # noqa: F401
from app.modules.booking import models as booking_models  # noqa: F401
from app.modules.facilities import models as facilities_models  # noqa: F401
from app.modules.identity import models as identity_models  # noqa: F401
