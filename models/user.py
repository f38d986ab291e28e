from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship

from models.base_model import Base, BaseModel


class User(BaseModel, Base):
    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    blocked_at = Column(DateTime, nullable=True)
    last_login_at = Column(DateTime, nullable=True)

    roles = relationship(
        "Role",
        secondary="user_roles",
        back_populates="users",
        lazy="selectin",
    )
    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_blocked(self) -> bool:
        return self.blocked_at is not None

    @property
    def role_names(self) -> set[str]:
        return {role.name for role in self.roles}

    @property
    def permission_names(self) -> set[str]:
        """Union of the permissions granted by every role the user holds."""
        return {perm.name for role in self.roles for perm in role.permissions}
