# Registers every model on the same metadata (alembic autogenerate, create_all)
from clinic.db.base_class import Base  # noqa
from clinic.models.audit_log import AuditLog  # noqa
from clinic.models.capacity import CapacityConfig  # noqa
from clinic.models.patient import Patient  # noqa
from clinic.models.payment import Payment  # noqa
from clinic.models.progress import ProgressEntry  # noqa
from clinic.models.proposal import ProposalService, TherapeuticProposal  # noqa
from clinic.models.service import Service  # noqa
from clinic.models.therapist import Therapist  # noqa
from clinic.models.therapy_session import TherapySession  # noqa
from clinic.models.user import User  # noqa
