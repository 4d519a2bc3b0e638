"""
eph_backend/orm/competition.py
Competition model

Holds schedule and capacity. seats_remaining is written only through
services.capacity; status is a cached label recomputed from the dates.
"""
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text, Numeric, ForeignKey,
    CheckConstraint, Enum as SQLEnum
)
from sqlalchemy.orm import relationship
from enum import Enum as PyEnum

from eph_backend.core.db_types import UniversalJSON
from eph_backend.orm.base import BaseModel


class SourceType(str, PyEnum):
    """Who is running the competition"""
    COMPANY = "company"
    HACKATHON = "hackathon"
    UNIVERSITY = "university"
    INTERNAL = "internal"


class CompetitionStatus(str, PyEnum):
    """Stored status label"""
    DRAFT = "draft"
    PUBLISHED = "published"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


MAX_TEAM_SIZE_LIMIT = 10


class Competition(BaseModel):
    __tablename__ = "competitions"
    __table_args__ = (
        CheckConstraint("seats_remaining >= 0", name="ck_competitions_seats_nonnegative"),
        CheckConstraint("seats_remaining <= total_seats", name="ck_competitions_seats_within_total"),
        CheckConstraint("total_seats >= 1", name="ck_competitions_total_seats_positive"),
        CheckConstraint("max_team_size >= 1", name="ck_competitions_team_size_positive"),
    )

    # Basic Info
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    source_type = Column(SQLEnum(SourceType), default=SourceType.INTERNAL, nullable=False, index=True)
    sponsor = Column(String(200), nullable=True)
    location = Column(String(255), nullable=True)
    banner_image_url = Column(Text, nullable=True)
    rules = Column(Text, nullable=True)
    prize_pool = Column(Numeric(10, 2), nullable=True)

    # Schedule
    start_date = Column(DateTime, nullable=False, index=True)
    end_date = Column(DateTime, nullable=False, index=True)
    registration_deadline = Column(DateTime, nullable=True, index=True)

    # Capacity
    max_team_size = Column(Integer, nullable=False, default=1)
    total_seats = Column(Integer, nullable=False)
    seats_remaining = Column(Integer, nullable=False)

    # Semi-structured fields, normalized at the API boundary
    stages = Column(Text, nullable=False, default="[]")
    tags = Column(UniversalJSON, nullable=False, default=list)
    eligibility_criteria = Column(UniversalJSON, nullable=True, default=dict)
    contact_info = Column(UniversalJSON, nullable=True, default=dict)

    # Status
    status = Column(SQLEnum(CompetitionStatus), default=CompetitionStatus.DRAFT, nullable=False, index=True)
    is_featured = Column(Boolean, default=False, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    creator = relationship("User", lazy="selectin")
    registrations = relationship(
        "Registration",
        back_populates="competition",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True
    )
    submissions = relationship(
        "Submission",
        back_populates="competition",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    def __repr__(self):
        return (
            f"<Competition(id={self.id}, title='{self.title}', "
            f"seats={self.seats_remaining}/{self.total_seats})>"
        )

    @property
    def is_cancelled(self) -> bool:
        return self.status == CompetitionStatus.CANCELLED

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "source_type": self.source_type.value if self.source_type else None,
            "sponsor": self.sponsor,
            "location": self.location,
            "banner_image_url": self.banner_image_url,
            "rules": self.rules,
            "prize_pool": float(self.prize_pool) if self.prize_pool is not None else None,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "registration_deadline": self.registration_deadline.isoformat() if self.registration_deadline else None,
            "max_team_size": self.max_team_size,
            "total_seats": self.total_seats,
            "seats_remaining": self.seats_remaining,
            "stages": self.stages,
            "tags": list(self.tags or []),
            "eligibility_criteria": self.eligibility_criteria,
            "contact_info": self.contact_info,
            "status": self.status.value if self.status else None,
            "is_featured": self.is_featured,
            "is_active": self.is_active,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
