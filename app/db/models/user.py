import enum
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from app.db.base import Base


class UserRole(str, enum.Enum):
    """Platform roles. Only the entitlement flow promotes basic -> pro."""
    BASIC = "basic"
    PRO = "pro"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    external_id = Column(String, unique=True, index=True, nullable=False)  # identity provider user id
    name = Column(String, nullable=False, default="Unknown User")
    email = Column(String, unique=True, index=True, nullable=True)
    role = Column(String, nullable=False, default=UserRole.BASIC.value)
    chef = Column(String, nullable=False, default="no")  # yes | no
    photo = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<User(id={self.id}, external_id='{self.external_id}', role='{self.role}')>"
