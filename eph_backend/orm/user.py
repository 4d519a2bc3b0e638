"""
eph_backend/orm/user.py
User model

Accounts are created by the authentication service; this service only
reads them to resolve the acting user and team members.
"""
from sqlalchemy import Column, String, Boolean, Enum as SQLEnum
from enum import Enum
from eph_backend.orm.base import BaseModel


class UserRole(str, Enum):
    """Platform roles"""
    student = "student"
    hiring = "hiring"
    investor = "investor"
    admin = "admin"


# Roles allowed to browse a competition's registrations
REGISTRATION_VIEWER_ROLES = (UserRole.admin, UserRole.hiring, UserRole.investor)


class User(BaseModel):
    __tablename__ = "users"

    # Authentication
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    password_hash = Column(String(255), nullable=False, default="")
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.student, index=True)

    # Profile
    college = Column(String(255), nullable=True)
    branch = Column(String(120), nullable=True)
    year = Column(String(20), nullable=True)
    phone = Column(String(50), nullable=True)
    profile_pic_url = Column(String(500), nullable=True)

    # Account Status
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin

    def to_public_dict(self, include_contact: bool = False):
        data = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "college": self.college,
            "profile_pic_url": self.profile_pic_url,
        }
        if include_contact:
            data.update({
                "branch": self.branch,
                "year": self.year,
                "phone": self.phone,
            })
        return data

    def to_dict(self):
        return {
            **self.to_public_dict(include_contact=True),
            "role": self.role.value if self.role else None,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
