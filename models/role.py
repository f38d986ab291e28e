from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


class Role(BaseModel, Base):
    """Named bundle of permissions assigned to users."""
    __tablename__ = "roles"

    name = Column(String(64), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)

    permissions = relationship(
        "Permission",
        secondary="role_permissions",
        back_populates="roles",
        lazy="selectin",
    )
    users = relationship("User", secondary="user_roles", back_populates="roles")
