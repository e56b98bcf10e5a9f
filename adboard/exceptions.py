"""
Error kinds raised by the listing core.

Services raise these undecorated; mapping to HTTP status codes happens
in the router layer only.
"""


class ServiceError(Exception):
    """Base class for every failure the listing core reports."""


class CallerNotFound(ServiceError):
    def __init__(self, email: str) -> None:
        super().__init__(f"Caller {email!r} does not resolve to a user")
        self.email = email


class AuthorNotFound(ServiceError):
    def __init__(self, listing_id: int) -> None:
        super().__init__(f"Author of listing {listing_id} does not resolve to a user")
        self.listing_id = listing_id


class ListingNotFound(ServiceError):
    def __init__(self, listing_id: int) -> None:
        super().__init__(f"Listing {listing_id} not found")
        self.listing_id = listing_id


class NotAuthor(ServiceError):
    def __init__(self, email: str, listing_id: int) -> None:
        super().__init__(f"{email!r} is neither the author of listing {listing_id} nor an admin")
        self.email = email
        self.listing_id = listing_id


class AssetNotFound(ServiceError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Asset {name!r} not found")
        self.name = name


class AssetIOFailure(ServiceError):
    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"I/O failure on asset {name!r}: {reason}")
        self.name = name
        self.reason = reason
