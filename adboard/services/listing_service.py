"""
Listing service — lifecycle of classified-ad listings.

Design notes
------------
- Every mutating operation runs the ``AuthorizationGuard`` before it
  touches anything.  The guard resolves the caller, then confirms the
  listing exists, then checks role and ownership; a DENY becomes
  ``NotAuthor`` here.
- The caller is always an explicit ``Caller`` argument.  Nothing reads
  an ambient "current user".
- ``create_listing`` writes the image before the row.  A failed image
  write therefore leaves no listing behind; a failed row write after a
  successful image write leaves an unreferenced file, which is accepted.
- ``delete_listing`` removes the listing's comments one by one (newest
  first) and flushes them before the listing row itself is deleted.
- ``get_listings`` and ``get_listing`` are cache-aside reads; every
  write invalidates the list entry and the affected detail entry.
- Functions flush but never commit; ``get_db`` owns the transaction.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from adboard.authorization import AuthorizationGuard, Caller, Decision
from adboard.cache import LIST_KEY, cache, detail_key
from adboard.config import settings
from adboard.exceptions import AuthorNotFound, ListingNotFound, NotAuthor
from adboard.models import Listing, User
from adboard.repositories import CommentRepository, ListingRepository
from adboard.schemas import CreateOrUpdateAd, ListingDetail, ListingsPage, ListingSummary
from adboard.storage import AssetStore, email_digest

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _to_summary(store: AssetStore, listing: Listing) -> ListingSummary:
    return ListingSummary(
        id=listing.id,
        author_id=listing.author_id,
        title=listing.title,
        price=listing.price,
        image=store.url_for(listing.image),
    )


def _to_page(store: AssetStore, listings: list[Listing]) -> ListingsPage:
    return ListingsPage(
        count=len(listings),
        results=[_to_summary(store, listing) for listing in listings],
    )


def _to_detail(store: AssetStore, listing: Listing, author: User) -> ListingDetail:
    return ListingDetail(
        id=listing.id,
        title=listing.title,
        description=listing.description,
        price=listing.price,
        image=store.url_for(listing.image),
        author_first_name=author.first_name,
        author_last_name=author.last_name,
        email=author.email,
        phone=author.phone,
    )


async def _authorized_listing(db: AsyncSession, caller: Caller, listing_id: int) -> Listing:
    """Run the guard and return the listing, raising ``NotAuthor`` on DENY."""
    decision = await AuthorizationGuard(db).authorize(caller, listing_id)
    if decision is Decision.DENY:
        logger.warning("Denied %s access to listing %d", caller.email, listing_id)
        raise NotAuthor(caller.email, listing_id)

    listing = await ListingRepository(db).find(listing_id)
    if listing is None:  # pragma: no cover - deleted between guard and load
        raise ListingNotFound(listing_id)
    return listing


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_listings(db: AsyncSession, store: AssetStore) -> ListingsPage:
    """Return every listing.  An empty table yields ``count == 0``."""
    cached = await cache.get(LIST_KEY)
    if cached:
        return ListingsPage(**cached)

    page = _to_page(store, await ListingRepository(db).find_all())
    await cache.set(LIST_KEY, page.model_dump(), ttl=settings.CACHE_TTL_LIST)
    return page


async def get_my_listings(db: AsyncSession, store: AssetStore, caller: Caller) -> ListingsPage:
    user = await AuthorizationGuard(db).resolve_caller(caller)
    return _to_page(store, await ListingRepository(db).find_all_by_author(user.id))


async def get_listing(db: AsyncSession, store: AssetStore, listing_id: int) -> ListingDetail:
    """
    Return the detail view of *listing_id* with the author's contact
    fields denormalised into it.

    Raises ``ListingNotFound`` when the listing does not exist and
    ``AuthorNotFound`` when its author reference does not resolve.
    """
    key = detail_key(listing_id)
    cached = await cache.get(key)
    if cached:
        return ListingDetail(**cached)

    listing = await ListingRepository(db).find_with_author(listing_id)
    if listing is None:
        raise ListingNotFound(listing_id)
    if listing.author is None:
        raise AuthorNotFound(listing_id)

    detail = _to_detail(store, listing, listing.author)
    await cache.set(key, detail.model_dump(), ttl=settings.CACHE_TTL_DETAIL)
    return detail


def get_listing_image(store: AssetStore, name: str) -> bytes:
    return store.fetch(name)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def create_listing(
    db: AsyncSession,
    store: AssetStore,
    caller: Caller,
    data: CreateOrUpdateAd,
    image: bytes,
) -> ListingSummary:
    """
    Create a listing authored by *caller* with *image* as its picture.

    The image name uses the caller's listing count plus one as its
    sequence number, so a user's first listing is ``Ads_1_...``.
    """
    user = await AuthorizationGuard(db).resolve_caller(caller)
    listings = ListingRepository(db)

    sequence_number = await listings.count_by_author(user.id) + 1
    name = store.store(user.id, sequence_number, email_digest(user.email), image)

    listing = await listings.save(
        Listing(
            title=data.title,
            description=data.description,
            price=data.price,
            image=name,
            author_id=user.id,
        )
    )

    await cache.invalidate_listing()
    logger.info("Listing %d created by user %d with image %s", listing.id, user.id, name)
    return _to_summary(store, listing)


async def update_listing(
    db: AsyncSession,
    store: AssetStore,
    caller: Caller,
    listing_id: int,
    data: CreateOrUpdateAd,
) -> ListingSummary:
    """
    Overwrite description and price of *listing_id*.

    ``data.title`` is accepted but not applied: the stored title stays
    as it was.  Whether titles should be editable is pending a product
    decision.
    """
    listing = await _authorized_listing(db, caller, listing_id)

    listing.description = data.description
    listing.price = data.price
    await ListingRepository(db).save(listing)

    await cache.invalidate_listing(listing_id)
    logger.info("Listing %d updated by %s", listing_id, caller.email)
    return _to_summary(store, listing)


async def update_listing_image(
    db: AsyncSession,
    store: AssetStore,
    caller: Caller,
    listing_id: int,
    image: bytes,
) -> str:
    """
    Replace the picture of *listing_id* and return the asset name.

    The existing name is reused.  A listing that never had a picture
    gets a name derived from its author and its own id.
    """
    listing = await _authorized_listing(db, caller, listing_id)

    if listing.image is None:
        author = await db.get(User, listing.author_id)
        if author is None:
            raise AuthorNotFound(listing_id)
        name = store.store(author.id, listing.id, email_digest(author.email), image)
    else:
        name = store.replace(listing.image, image)

    listing.image = name
    await ListingRepository(db).save(listing)

    await cache.invalidate_listing(listing_id)
    logger.info("Listing %d image replaced by %s", listing_id, caller.email)
    return name


async def delete_listing(db: AsyncSession, caller: Caller, listing_id: int) -> None:
    """Delete *listing_id* after removing every comment that references it."""
    listing = await _authorized_listing(db, caller, listing_id)

    comments = CommentRepository(db)
    dependents = await comments.find_all_by_listing(listing_id)
    for comment in dependents:
        await comments.delete(comment)
    if dependents:
        await db.flush()

    await ListingRepository(db).delete(listing)

    await cache.invalidate_listing(listing_id)
    logger.info(
        "Listing %d deleted by %s (%d comments removed)", listing_id, caller.email, len(dependents)
    )
