from app.models.base import Base  # noqa: F401

from app.models.owner_profile import OwnerProfile  # noqa: F401
from app.models.api_key import ApiKey  # noqa: F401
from app.models.development import Development  # noqa: F401
from app.models.unit_type import UnitType  # noqa: F401
from app.models.approval_queue import ApprovalQueueEntry  # noqa: F401
from app.models.audit_log import AuditLog  # noqa: F401
from app.models.idempotency import IdempotencyKey  # noqa: F401
