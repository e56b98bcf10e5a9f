import json

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from adboard.authorization import Caller
from adboard.database import get_db
from adboard.dependencies import get_asset_store
from adboard.exceptions import (
    AssetIOFailure,
    AssetNotFound,
    AuthorNotFound,
    CallerNotFound,
    ListingNotFound,
    NotAuthor,
    ServiceError,
)
from adboard.schemas import CreateOrUpdateAd, ListingDetail, ListingsPage, ListingSummary
from adboard.security import get_caller
from adboard.services import listing_service
from adboard.storage import AssetStore

router = APIRouter(prefix="/api/v1/ads", tags=["ads"])

_ERROR_RESPONSES: list[tuple[type[ServiceError], int, str]] = [
    (CallerNotFound, 401, "Caller not found"),
    (ListingNotFound, 404, "Listing not found"),
    (AuthorNotFound, 404, "Author not found"),
    (NotAuthor, 403, "Only the author or an admin may change this listing"),
    (AssetNotFound, 404, "Image not found"),
    (AssetIOFailure, 500, "Image storage failure"),
]


def _http_error(exc: ServiceError) -> HTTPException:
    for kind, status_code, detail in _ERROR_RESPONSES:
        if isinstance(exc, kind):
            return HTTPException(status_code=status_code, detail=detail)
    return HTTPException(status_code=500, detail=str(exc))


def _parse_properties(raw: str) -> CreateOrUpdateAd:
    try:
        return CreateOrUpdateAd.model_validate_json(raw)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=json.loads(exc.json()))


@router.get("", response_model=ListingsPage)
async def list_ads(
    db: AsyncSession = Depends(get_db),
    store: AssetStore = Depends(get_asset_store),
):
    return await listing_service.get_listings(db, store)


@router.get("/me", response_model=ListingsPage)
async def list_my_ads(
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
    store: AssetStore = Depends(get_asset_store),
):
    try:
        return await listing_service.get_my_listings(db, store, caller)
    except ServiceError as exc:
        raise _http_error(exc) from exc


@router.get("/image/{name}")
async def get_ad_image(name: str, store: AssetStore = Depends(get_asset_store)):
    try:
        data = listing_service.get_listing_image(store, name)
    except ServiceError as exc:
        raise _http_error(exc) from exc
    return Response(content=data, media_type="image/jpeg")


@router.post("", status_code=201, response_model=ListingSummary)
async def create_ad(
    properties: str = Form(...),
    image: UploadFile = File(...),
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
    store: AssetStore = Depends(get_asset_store),
):
    data = _parse_properties(properties)
    try:
        return await listing_service.create_listing(db, store, caller, data, await image.read())
    except ServiceError as exc:
        raise _http_error(exc) from exc


@router.get("/{listing_id}", response_model=ListingDetail)
async def get_ad(
    listing_id: int,
    db: AsyncSession = Depends(get_db),
    store: AssetStore = Depends(get_asset_store),
):
    try:
        return await listing_service.get_listing(db, store, listing_id)
    except ServiceError as exc:
        raise _http_error(exc) from exc


@router.patch("/{listing_id}", response_model=ListingSummary)
async def update_ad(
    listing_id: int,
    data: CreateOrUpdateAd,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
    store: AssetStore = Depends(get_asset_store),
):
    try:
        return await listing_service.update_listing(db, store, caller, listing_id, data)
    except ServiceError as exc:
        raise _http_error(exc) from exc


@router.patch("/{listing_id}/image")
async def update_ad_image(
    listing_id: int,
    image: UploadFile = File(...),
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
    store: AssetStore = Depends(get_asset_store),
):
    try:
        name = await listing_service.update_listing_image(
            db, store, caller, listing_id, await image.read()
        )
    except ServiceError as exc:
        raise _http_error(exc) from exc
    return {"image": store.url_for(name)}


@router.delete("/{listing_id}", status_code=204)
async def delete_ad(
    listing_id: int,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    try:
        await listing_service.delete_listing(db, caller, listing_id)
    except ServiceError as exc:
        raise _http_error(exc) from exc
