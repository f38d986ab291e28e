"""
Idempotent RBAC seed data.

Permissions follow the `resource:action` convention. The `admin` role gets
every permission; the `user` role can read user profiles.
"""
from __future__ import annotations

import logging

from models.permission import Permission
from models.role import Role
from models.user import User

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"
DEFAULT_ROLE = "user"

PERMISSIONS = {
    "user:read": "Read user data",
    "user:write": "Create and update users",
    "user:delete": "Delete users",
    "role:read": "Read roles",
    "role:write": "Create and update roles",
}

ROLES = {
    ADMIN_ROLE: ("Full access administrator", list(PERMISSIONS)),
    DEFAULT_ROLE: ("Regular user", ["user:read"]),
}


def get_or_create_role(session, name: str, description: str | None = None) -> Role:
    role = session.query(Role).filter(Role.name == name).first()
    if role is None:
        role = Role(name=name, description=description)
        session.add(role)
    return role


def seed_rbac(session) -> dict:
    """Create missing permissions and roles; existing rows are left as they are."""
    created = {"permissions": 0, "roles": 0}

    perms = {p.name: p for p in session.query(Permission).all()}
    for name, description in PERMISSIONS.items():
        if name not in perms:
            perms[name] = Permission(name=name, description=description)
            session.add(perms[name])
            created["permissions"] += 1

    existing_roles = {r.name for r in session.query(Role).all()}
    for name, (description, perm_names) in ROLES.items():
        if name in existing_roles:
            continue
        role = Role(name=name, description=description)
        role.permissions = [perms[p] for p in perm_names]
        session.add(role)
        created["roles"] += 1

    session.commit()
    if created["permissions"] or created["roles"]:
        logger.info("Seeded %(permissions)d permissions and %(roles)d roles", created)
    return created


def seed_admin(session, email: str, password_hash: str, name: str = "Admin") -> tuple[User, bool]:
    """Create an active, verified admin user unless the email already exists."""
    email = email.strip().lower()
    user = session.query(User).filter(User.email == email).first()
    if user is not None:
        return user, False

    seed_rbac(session)
    admin_role = get_or_create_role(session, ADMIN_ROLE)
    user = User(
        email=email,
        password_hash=password_hash,
        name=name,
        is_active=True,
        is_verified=True,
    )
    user.roles.append(admin_role)
    session.add(user)
    session.commit()
    logger.info("Created admin user %s", email)
    return user, True
