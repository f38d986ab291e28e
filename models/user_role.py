from sqlalchemy import Column, String, DateTime, ForeignKey

from models.base_model import Base, utcnow


class UserRole(Base):
    """Join record between users and roles."""
    __tablename__ = "user_roles"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role_id = Column(String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
    # Core-level default so inserts made through User.roles get it too
    assigned_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<UserRole user_id={self.user_id} role_id={self.role_id}>"
