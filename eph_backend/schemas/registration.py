"""
eph_backend/schemas/registration.py
Request schema for competition registration.
"""
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from eph_backend.orm.competition import MAX_TEAM_SIZE_LIMIT
from eph_backend.orm.registration import RegistrationType


class RegisterRequest(BaseModel):
    """
    Used by: POST /api/competitions/{id}/register

    member_emails excludes the leader. Team size checks against the
    competition happen in the registration guard, not here.
    """
    type: RegistrationType = RegistrationType.INDIVIDUAL
    team_name: Optional[str] = Field(None, max_length=255)
    member_emails: List[EmailStr] = Field(default_factory=list, max_length=MAX_TEAM_SIZE_LIMIT * 2)
    abstract: Optional[str] = Field(None, max_length=5000)

    @field_validator("member_emails", mode="before")
    @classmethod
    def drop_blank_emails(cls, v):
        if v is None:
            return []
        if not isinstance(v, list):
            return v
        cleaned = []
        for email in v:
            if isinstance(email, str):
                email = email.strip()
                if not email:
                    continue
            cleaned.append(email)
        return cleaned

    class Config:
        json_schema_extra = {
            "example": {
                "type": "team",
                "team_name": "Null Pointers",
                "member_emails": ["asha@example.edu", "ravi@example.edu"],
                "abstract": "Offline-first attendance tracker"
            }
        }
