"""Populate the adboard database with demo users, listings and comments."""
import asyncio
import argparse
import random
import time

from adboard.authorization import Caller
from adboard.database import engine, async_session, Base
from adboard.dependencies import get_asset_store
from adboard.models import Comment, Role, User
from adboard.schemas import CreateOrUpdateAd
from adboard.security import hash_password
from adboard.services import listing_service

ITEMS = ["Bike", "Sofa", "Laptop", "Guitar", "Kettle", "Desk lamp", "Stroller", "Tent"]
DEMO_PASSWORD = "password123"

# Smallest valid JPEG-ish payload; the store does not inspect contents.
PLACEHOLDER_IMAGE = b"\xff\xd8\xff\xe0" + b"\x00" * 16 + b"\xff\xd9"


async def seed(small: bool = False):
    num_users = 5 if small else 25
    listings_per_user = 2 if small else 8
    max_comments = 2 if small else 5

    print(f"Seeding: {num_users} users (+1 admin), ~{num_users * listings_per_user} listings")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    store = get_asset_store()
    password_hash = hash_password(DEMO_PASSWORD)

    async with async_session() as session:
        session.add(User(
            email="admin@example.com",
            password_hash=password_hash,
            first_name="Ada",
            last_name="Admin",
            role=Role.ADMIN,
        ))
        users = []
        for i in range(num_users):
            user = User(
                email=f"user_{i:03d}@example.com",
                password_hash=password_hash,
                first_name=f"User{i}",
                last_name="Demo",
                phone=f"+7900{i:07d}",
                role=Role.USER,
            )
            session.add(user)
            users.append(user)
        await session.flush()
        print(f"  Created {len(users) + 1} users")

        listing_ids = []
        for user in users:
            caller = Caller(email=user.email, role=user.role)
            for _ in range(listings_per_user):
                item = random.choice(ITEMS)
                created = await listing_service.create_listing(
                    session,
                    store,
                    caller,
                    CreateOrUpdateAd(
                        title=item,
                        description=f"Used {item.lower()} in good condition",
                        price=random.randint(0, 50_000),
                    ),
                    PLACEHOLDER_IMAGE,
                )
                listing_ids.append(created.id)
        print(f"  Created {len(listing_ids)} listings")

        total_comments = 0
        for listing_id in listing_ids:
            for _ in range(random.randint(0, max_comments)):
                session.add(Comment(
                    text="Is this still available?",
                    listing_id=listing_id,
                    author_id=random.choice(users).id,
                ))
                total_comments += 1
        await session.flush()

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Listings: {len(listing_ids)}")
    print(f"  Comments: {total_comments}")
    print(f"  Images in: {store.config.directory}")
    print(f"  Log in as admin@example.com / {DEMO_PASSWORD}")


def main():
    parser = argparse.ArgumentParser(description="Seed the adboard database")
    parser.add_argument("--small", action="store_true", help="Use a small dataset")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
