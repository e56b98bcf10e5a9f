"""
User service — registration of listing authors.

The listing core only reads users; this module is the one place that
creates them.  Registration always yields the ``USER`` role, admins are
provisioned out of band (see ``scripts/seed.py``).
"""
from sqlalchemy.ext.asyncio import AsyncSession

from adboard.models import Role, User
from adboard.repositories import UserRepository
from adboard.schemas import UserCreate, UserResponse
from adboard.security import hash_password


async def create_user(db: AsyncSession, data: UserCreate) -> UserResponse:
    """
    Create a user and return its public representation.

    Email uniqueness is enforced by the database; the router turns the
    resulting ``IntegrityError`` into a 409.
    """
    user = User(
        email=data.email,
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        role=Role.USER,
    )
    await UserRepository(db).save(user)
    # created_at is filled in by the database
    await db.refresh(user)
    return UserResponse.model_validate(user)
