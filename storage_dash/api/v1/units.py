"""Units API routes: inventory CRUD, rentals, and live statistics."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storage_dash.api.deps import Pagination, get_current_active_user, get_db, get_pagination
from storage_dash.auth import permissions
from storage_dash.auth.permissions import ensure_permission
from storage_dash.errors import ConflictError
from storage_dash.models.unit import Unit
from storage_dash.models.user import User
from storage_dash.schemas.auth import MessageResponse
from storage_dash.schemas.unit import (
    UnitCreate,
    UnitListResponse,
    UnitRentRequest,
    UnitResponse,
    UnitStatsResponse,
    UnitUpdate,
)
from storage_dash.services import unit_service

router = APIRouter(prefix="/api/v1/units", tags=["units"])

_SORT_FIELDS = {
    "id": Unit.id,
    "size": Unit.size,
    "price_per_month": Unit.price_per_month,
    "is_occupied": Unit.is_occupied,
    "created_at": Unit.created_at,
}

# Non-nullable columns; an explicit null in an update leaves them unchanged
_REQUIRED_FIELDS = frozenset({"size", "price_per_month"})


# Registered before /{unit_id} so "stats" is not taken for an id
@router.get("/stats", response_model=UnitStatsResponse, summary="Live unit statistics")
async def get_unit_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> UnitStatsResponse:
    ensure_permission(current_user, permissions.UNITS_READ)
    return await unit_service.unit_statistics(db)


@router.get("", response_model=UnitListResponse, summary="List units")
async def list_units(
    size: str | None = Query(None),
    occupied: str | None = Query(None, description="'true' or 'false'"),
    search: str | None = Query(None, description="Substring of the unit id"),
    sort_by: str = Query("id"),
    sort_order: str = Query("asc"),
    pagination: Pagination = Depends(get_pagination),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> UnitListResponse:
    """Return a filtered, sorted page of units."""
    ensure_permission(current_user, permissions.UNITS_READ)

    filters = []
    if size:
        filters.append(Unit.size == size)
    if occupied == "true":
        filters.append(Unit.is_occupied.is_(True))
    elif occupied == "false":
        filters.append(Unit.is_occupied.is_(False))
    if search:
        filters.append(Unit.id.ilike(f"%{search}%"))

    sort_column = _SORT_FIELDS.get(sort_by, Unit.id)
    order = sort_column.desc() if sort_order.lower() == "desc" else sort_column.asc()

    count_query = select(func.count()).select_from(Unit).where(*filters)
    total = (await db.execute(count_query)).scalar_one()

    items_query = select(Unit).where(*filters).order_by(order).offset(pagination.offset).limit(pagination.limit)
    result = await db.execute(items_query)
    items = list(result.scalars().all())

    return UnitListResponse(
        items=[UnitResponse.model_validate(u) for u in items],
        total=total,
        page=pagination.page,
        limit=pagination.limit,
        pages=pagination.pages(total),
    )


@router.get("/{unit_id}", response_model=UnitResponse, summary="Get a unit by ID")
async def get_unit(
    unit_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> UnitResponse:
    ensure_permission(current_user, permissions.UNITS_READ)
    unit = await unit_service.get_unit_or_404(db, unit_id)
    return UnitResponse.model_validate(unit)


@router.post("", response_model=UnitResponse, status_code=status.HTTP_201_CREATED, summary="Create a unit")
async def create_unit(
    body: UnitCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> UnitResponse:
    """Create a free unit. Unit ids are chosen by the caller and must be unique."""
    ensure_permission(current_user, permissions.UNITS_WRITE)

    if await db.get(Unit, body.id) is not None:
        raise ConflictError(f"Unit with ID {body.id} already exists")

    unit = Unit(**body.model_dump(), is_occupied=False)
    db.add(unit)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise ConflictError(f"Unit with ID {body.id} already exists") from exc
    await db.refresh(unit)
    return UnitResponse.model_validate(unit)


@router.put("/{unit_id}", response_model=UnitResponse, summary="Update a unit")
async def update_unit(
    unit_id: str,
    body: UnitUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> UnitResponse:
    """Partially update size, price, floor, or notes."""
    ensure_permission(current_user, permissions.UNITS_WRITE)
    unit = await unit_service.get_unit_or_404(db, unit_id)

    for field, value in body.model_dump(exclude_unset=True).items():
        if value is None and field in _REQUIRED_FIELDS:
            continue
        setattr(unit, field, value)

    db.add(unit)
    await db.flush()
    await db.refresh(unit)
    return UnitResponse.model_validate(unit)


@router.delete("/{unit_id}", response_model=MessageResponse, summary="Delete a unit")
async def delete_unit(
    unit_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MessageResponse:
    ensure_permission(current_user, permissions.UNITS_DELETE)
    unit = await unit_service.get_unit_or_404(db, unit_id)

    if unit.is_occupied:
        raise ConflictError("Cannot delete an occupied unit. Release it first.")

    await db.delete(unit)
    await db.flush()
    return MessageResponse(message="Unit deleted")


@router.post("/{unit_id}/rent", response_model=UnitResponse, summary="Rent a unit to a customer")
async def rent_unit(
    unit_id: str,
    body: UnitRentRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> UnitResponse:
    ensure_permission(current_user, permissions.UNITS_RENT)
    unit = await unit_service.get_unit_or_404(db, unit_id)
    unit = await unit_service.rent_unit(db, unit, body.customer_id)
    return UnitResponse.model_validate(unit)


@router.post("/{unit_id}/release", response_model=UnitResponse, summary="Release a rented unit")
async def release_unit(
    unit_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> UnitResponse:
    ensure_permission(current_user, permissions.UNITS_RENT)
    unit = await unit_service.get_unit_or_404(db, unit_id)
    unit = await unit_service.release_unit(db, unit)
    return UnitResponse.model_validate(unit)
