from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


class Permission(BaseModel, Base):
    """Granular grant named `resource:action`, e.g. `user:read`."""
    __tablename__ = "permissions"

    name = Column(String(128), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)

    roles = relationship("Role", secondary="role_permissions", back_populates="permissions")
