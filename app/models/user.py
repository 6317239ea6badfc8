from sqlalchemy import Column, String, Numeric, Text
from sqlalchemy.orm import relationship
import enum
from .base import BaseModel


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    DEVELOPER = "developer"
    TEAM_MANAGER = "team_manager"
    USER = "user"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    PENDING = "pending"
    INACTIVE = "inactive"


class User(BaseModel):
    """Application user; pending users have no password until they accept their invitation."""
    __tablename__ = "users"

    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False, default=UserRole.USER.value)
    status = Column(String(50), nullable=False, default=UserStatus.ACTIVE.value)
    pay_rate = Column(Numeric(10, 2), nullable=False, default=0)
    hashed_password = Column(Text)

    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value

    @property
    def pay_rate_value(self) -> float:
        return float(self.pay_rate or 0)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
