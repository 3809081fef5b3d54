from controlo.infrastructure.repositories.audit_log_repository import AuditLogRepository
from controlo.infrastructure.repositories.concurso_repository import ConcursoRepository
from controlo.infrastructure.repositories.lookup_repository import LookupRepository
from controlo.infrastructure.repositories.user_repository import UserRepository

__all__ = [
    "AuditLogRepository",
    "ConcursoRepository",
    "LookupRepository",
    "UserRepository",
]
