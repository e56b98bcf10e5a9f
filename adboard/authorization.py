"""
Owner-or-admin authorization for listing mutations.

The guard always evaluates in the same order:

1. resolve the caller to a stored user (``CallerNotFound`` otherwise);
2. load the target listing (``ListingNotFound`` otherwise);
3. ask each access rule in turn, the role rule first and the ownership
   rule second.  The first rule that allows wins; if none does the
   decision is ``DENY``.

Steps 1 and 2 raise, step 3 returns a ``Decision``.  Turning a DENY into
``NotAuthor`` is left to the caller of the guard.
"""
import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from adboard.exceptions import CallerNotFound, ListingNotFound
from adboard.models import Listing, Role, User
from adboard.repositories import ListingRepository, UserRepository


@dataclass(frozen=True)
class Caller:
    """Identity of whoever issued the current request."""

    email: str
    role: Role = Role.USER


class Decision(str, enum.Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


class AccessRule(ABC):
    @abstractmethod
    def allows(self, caller: Caller, user: User, listing: Listing) -> bool:
        """Return True when this rule alone grants *caller* access to *listing*."""


class AdminRoleRule(AccessRule):
    def allows(self, caller: Caller, user: User, listing: Listing) -> bool:
        return caller.role is Role.ADMIN


class AuthorOwnershipRule(AccessRule):
    def allows(self, caller: Caller, user: User, listing: Listing) -> bool:
        return listing.author_id == user.id


DEFAULT_RULES: tuple[AccessRule, ...] = (AdminRoleRule(), AuthorOwnershipRule())


class AuthorizationGuard:
    def __init__(self, db: AsyncSession, rules: tuple[AccessRule, ...] = DEFAULT_RULES) -> None:
        self.users = UserRepository(db)
        self.listings = ListingRepository(db)
        self.rules = rules

    async def resolve_caller(self, caller: Caller) -> User:
        user = await self.users.find_by_email(caller.email)
        if user is None:
            raise CallerNotFound(caller.email)
        return user

    async def authorize(self, caller: Caller, listing_id: int) -> Decision:
        user = await self.resolve_caller(caller)

        listing = await self.listings.find(listing_id)
        if listing is None:
            raise ListingNotFound(listing_id)

        for rule in self.rules:
            if rule.allows(caller, user, listing):
                return Decision.ALLOW
        return Decision.DENY
