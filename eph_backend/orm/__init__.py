from .base import Base

from .user import User, UserRole
from .competition import Competition, CompetitionStatus, SourceType
from .registration import Registration, RegistrationType, RegistrationStatus, registration_team_members
from .submission import Submission, SubmissionStatus

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Competition",
    "CompetitionStatus",
    "SourceType",
    "Registration",
    "RegistrationType",
    "RegistrationStatus",
    "registration_team_members",
    "Submission",
    "SubmissionStatus",
]
