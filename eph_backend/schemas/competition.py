"""
eph_backend/schemas/competition.py
Request schemas for the competition catalogue.

Field-level limits are enforced here (422 on violation). Date ordering is
checked in services.competition_service against merged values so that
partial updates get the same rules as creation.

All endpoints respond with:
{
    "success": bool,
    "message": str,
    "data": dict
}
"""
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from eph_backend.orm.competition import CompetitionStatus, SourceType, MAX_TEAM_SIZE_LIMIT

DEFAULT_STAGES = ["registration", "submission", "evaluation"]

# Labels an admin may set by hand; the rest follow the clock.
WRITABLE_STATUSES = (CompetitionStatus.DRAFT, CompetitionStatus.PUBLISHED, CompetitionStatus.CANCELLED)


def _clean_tags(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return v
    return [tag.strip() for tag in v if tag and tag.strip()]


def _check_status(v: Optional[CompetitionStatus]) -> Optional[CompetitionStatus]:
    if v is not None and v not in WRITABLE_STATUSES:
        raise ValueError("status must be one of: draft, published, cancelled")
    return v


class CompetitionCreate(BaseModel):
    """
    Used by: POST /api/competitions
    """
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = None
    source_type: SourceType = SourceType.INTERNAL
    sponsor: Optional[str] = Field(None, max_length=200)
    location: Optional[str] = Field(None, max_length=255)
    banner_image_url: Optional[str] = None
    rules: Optional[str] = None
    prize_pool: Optional[float] = Field(None, ge=0)

    start_date: datetime
    end_date: datetime
    registration_deadline: Optional[datetime] = None

    max_team_size: int = Field(1, ge=1, le=MAX_TEAM_SIZE_LIMIT)
    total_seats: int = Field(100, ge=1)

    stages: Any = Field(default_factory=lambda: list(DEFAULT_STAGES))
    tags: List[str] = Field(default_factory=list)
    eligibility_criteria: Any = None
    contact_info: Any = None

    status: CompetitionStatus = CompetitionStatus.PUBLISHED
    is_featured: bool = False
    is_active: bool = True

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        if len(v.strip()) < 3:
            raise ValueError("Competition title is required")
        return v.strip()

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v):
        return _clean_tags(v)

    @field_validator('status')
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Campus Hackathon 2025",
                "source_type": "hackathon",
                "start_date": "2025-03-01T09:00:00Z",
                "end_date": "2025-03-03T18:00:00Z",
                "max_team_size": 4,
                "total_seats": 50,
                "tags": ["ai", "web"]
            }
        }


class CompetitionUpdate(BaseModel):
    """
    Used by: PATCH /api/competitions/{id}

    Only fields present in the body are applied. seats_remaining is not
    accepted; total_seats changes shift it by the same delta.
    """
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = None
    source_type: Optional[SourceType] = None
    sponsor: Optional[str] = Field(None, max_length=200)
    location: Optional[str] = Field(None, max_length=255)
    banner_image_url: Optional[str] = None
    rules: Optional[str] = None
    prize_pool: Optional[float] = Field(None, ge=0)

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    registration_deadline: Optional[datetime] = None

    max_team_size: Optional[int] = Field(None, ge=1, le=MAX_TEAM_SIZE_LIMIT)
    total_seats: Optional[int] = Field(None, ge=1)

    stages: Any = None
    tags: Optional[List[str]] = None
    eligibility_criteria: Any = None
    contact_info: Any = None

    status: Optional[CompetitionStatus] = None
    is_featured: Optional[bool] = None
    is_active: Optional[bool] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if len(v.strip()) < 3:
            raise ValueError("Competition title cannot be empty")
        return v.strip()

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v):
        return _clean_tags(v)

    @field_validator('status')
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)
