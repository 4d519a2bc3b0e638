"""
eph_backend/orm/registration.py
Registration model: one per (competition, leader).
Team members hang off it through an association table.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Table, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import Enum as PyEnum
from eph_backend.orm.base import Base, BaseModel


class RegistrationType(str, PyEnum):
    INDIVIDUAL = "individual"
    TEAM = "team"


class RegistrationStatus(str, PyEnum):
    """Only confirmed registrations exist; there is no waitlist."""
    CONFIRMED = "confirmed"


registration_team_members = Table(
    'registration_team_members',
    Base.metadata,
    Column('registration_id', Integer, ForeignKey('registrations.id', ondelete='CASCADE'), primary_key=True),
    Column('user_id', Integer, ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
    Column('joined_at', DateTime, default=datetime.utcnow)
)


class Registration(BaseModel):
    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("competition_id", "leader_id", name="uq_registrations_competition_leader"),
    )

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

    type = Column(SQLEnum(RegistrationType), default=RegistrationType.INDIVIDUAL, nullable=False)
    team_name = Column(String(255), nullable=True)
    abstract = Column(Text, nullable=True)
    status = Column(SQLEnum(RegistrationStatus), default=RegistrationStatus.CONFIRMED, nullable=False, index=True)

    competition = relationship("Competition", back_populates="registrations", lazy="selectin")
    leader = relationship("User", lazy="selectin")
    team_members = relationship("User", secondary=registration_team_members, lazy="selectin")

    def __repr__(self):
        return f"<Registration(id={self.id}, competition={self.competition_id}, leader={self.leader_id})>"

    @property
    def team_size(self) -> int:
        return 1 + len(self.team_members or [])

    def to_dict(self, include_contact: bool = False, include_competition: bool = True):
        data = {
            "id": self.id,
            "competition_id": self.competition_id,
            "leader_id": self.leader_id,
            "type": self.type.value if self.type else None,
            "team_name": self.team_name,
            "abstract": self.abstract,
            "status": self.status.value if self.status else None,
            "leader": self.leader.to_public_dict(include_contact) if self.leader else None,
            "team_members": [m.to_public_dict(include_contact) for m in (self.team_members or [])],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_competition and self.competition is not None:
            data["competition"] = {
                "id": self.competition.id,
                "title": self.competition.title,
                "source_type": self.competition.source_type.value if self.competition.source_type else None,
                "sponsor": self.competition.sponsor,
                "location": self.competition.location,
                "start_date": self.competition.start_date.isoformat() if self.competition.start_date else None,
                "end_date": self.competition.end_date.isoformat() if self.competition.end_date else None,
            }
        return data
