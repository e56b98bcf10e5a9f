"""
Thin persistence wrappers around an ``AsyncSession``.

Each repository only issues queries and flushes; commit and rollback
belong to the ``get_db`` dependency that created the session.
"""
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from adboard.models import Comment, Listing, User


class UserRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def save(self, user: User) -> User:
        self.db.add(user)
        await self.db.flush()
        return user


class ListingRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find(self, listing_id: int) -> Listing | None:
        # Session.get consults the identity map first, so a listing already
        # loaded by the authorization guard costs no extra query.
        return await self.db.get(Listing, listing_id)

    async def find_with_author(self, listing_id: int) -> Listing | None:
        q = (
            select(Listing)
            .where(Listing.id == listing_id)
            .options(joinedload(Listing.author))
            # noload leaves author=None on listings already in the session
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(q)
        return result.unique().scalar_one_or_none()

    async def find_all(self) -> list[Listing]:
        result = await self.db.execute(select(Listing).order_by(Listing.id))
        return list(result.scalars().all())

    async def find_all_by_author(self, user_id: int) -> list[Listing]:
        q = select(Listing).where(Listing.author_id == user_id).order_by(Listing.id)
        result = await self.db.execute(q)
        return list(result.scalars().all())

    async def count_by_author(self, user_id: int) -> int:
        q = select(func.count()).select_from(Listing).where(Listing.author_id == user_id)
        return (await self.db.execute(q)).scalar_one()

    async def save(self, listing: Listing) -> Listing:
        self.db.add(listing)
        await self.db.flush()
        return listing

    async def delete(self, listing: Listing) -> None:
        await self.db.delete(listing)
        await self.db.flush()


class CommentRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_all_by_listing(self, listing_id: int) -> list[Comment]:
        """Comments of *listing_id*, newest first."""
        q = (
            select(Comment)
            .where(Comment.listing_id == listing_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
        )
        result = await self.db.execute(q)
        return list(result.scalars().all())

    async def delete(self, comment: Comment) -> None:
        await self.db.delete(comment)
