"""
eph_backend/orm/submission.py
Project submission for a competition.

Written by the submission service; this service only reads it. A
submission for (competition, leader) blocks cancelling that leader's
registration.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from enum import Enum as PyEnum
from eph_backend.orm.base import BaseModel


class SubmissionStatus(str, PyEnum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    EVALUATED = "evaluated"


class Submission(BaseModel):
    __tablename__ = "submissions"

    competition_id = Column(
        Integer,
        ForeignKey("competitions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    leader_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    title = Column(String(255), nullable=False)
    status = Column(SQLEnum(SubmissionStatus), default=SubmissionStatus.SUBMITTED, nullable=False)

    competition = relationship("Competition", back_populates="submissions")

    def __repr__(self):
        return f"<Submission(id={self.id}, competition={self.competition_id}, leader={self.leader_id})>"
