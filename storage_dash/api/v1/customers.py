"""Customers API routes: tenant CRUD and customer-base statistics."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storage_dash import timeutils
from storage_dash.api.deps import Pagination, get_current_active_user, get_db, get_pagination
from storage_dash.auth import permissions
from storage_dash.auth.permissions import ensure_permission
from storage_dash.errors import ConflictError, ValidationError
from storage_dash.models.customer import Customer
from storage_dash.models.user import User
from storage_dash.schemas.auth import MessageResponse
from storage_dash.schemas.customer import (
    CustomerCreate,
    CustomerListResponse,
    CustomerResponse,
    CustomerStatsResponse,
    CustomerUpdate,
)
from storage_dash.services import customer_service

router = APIRouter(prefix="/api/v1/customers", tags=["customers"])

_SORT_FIELDS = {
    "name": Customer.name,
    "type": Customer.type,
    "start_date": Customer.start_date,
    "end_date": Customer.end_date,
    "created_at": Customer.created_at,
}

# Non-nullable columns; an explicit null in an update leaves them unchanged
_REQUIRED_FIELDS = frozenset({"name", "type", "start_date"})


@router.get("/stats", response_model=CustomerStatsResponse, summary="Customer-base statistics")
async def get_customer_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> CustomerStatsResponse:
    ensure_permission(current_user, permissions.CUSTOMERS_READ)
    return await customer_service.customer_statistics(db)


@router.get("", response_model=CustomerListResponse, summary="List customers")
async def list_customers(
    customer_type: str | None = Query(None, alias="type"),
    active: str | None = Query(None, description="'true' or 'false'"),
    search: str | None = Query(None, description="Substring of name, email, or company"),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc"),
    pagination: Pagination = Depends(get_pagination),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> CustomerListResponse:
    """Return a filtered, sorted page of customers."""
    ensure_permission(current_user, permissions.CUSTOMERS_READ)

    today = timeutils.utc_today()
    filters = []
    if customer_type:
        filters.append(Customer.type == customer_type)
    if active == "true":
        filters.append(or_(Customer.end_date.is_(None), Customer.end_date >= today))
    elif active == "false":
        filters.append(Customer.end_date < today)
    if search:
        pattern = f"%{search}%"
        filters.append(
            or_(
                Customer.name.ilike(pattern),
                Customer.email.ilike(pattern),
                Customer.company_name.ilike(pattern),
            )
        )

    sort_column = _SORT_FIELDS.get(sort_by, Customer.created_at)
    order = sort_column.asc() if sort_order.lower() == "asc" else sort_column.desc()

    count_query = select(func.count()).select_from(Customer).where(*filters)
    total = (await db.execute(count_query)).scalar_one()

    items_query = (
        select(Customer)
        .where(*filters)
        .order_by(order, Customer.id)
        .offset(pagination.offset)
        .limit(pagination.limit)
    )
    result = await db.execute(items_query)
    items = list(result.scalars().all())

    return CustomerListResponse(
        items=[CustomerResponse.model_validate(c) for c in items],
        total=total,
        page=pagination.page,
        limit=pagination.limit,
        pages=pagination.pages(total),
    )


@router.get("/{customer_id}", response_model=CustomerResponse, summary="Get a customer by ID")
async def get_customer(
    customer_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> CustomerResponse:
    ensure_permission(current_user, permissions.CUSTOMERS_READ)
    customer = await customer_service.get_customer_or_404(db, customer_id)
    return CustomerResponse.model_validate(customer)


@router.post(
    "",
    response_model=CustomerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a customer",
)
async def create_customer(
    body: CustomerCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> CustomerResponse:
    """Create a customer with the next free ``C###`` id."""
    ensure_permission(current_user, permissions.CUSTOMERS_WRITE)

    data = body.model_dump()
    if data["type"] != "business":
        data["company_name"] = None
    data["start_date"] = data["start_date"] or timeutils.utc_today()

    customer_id = await customer_service.next_customer_id(db)
    customer = Customer(id=customer_id, **data)
    db.add(customer)
    try:
        await db.flush()
    except IntegrityError as exc:
        # Another request took the same id between the read and the insert
        raise ConflictError(f"Customer ID {customer_id} was taken concurrently, retry the request") from exc
    await db.refresh(customer)
    return CustomerResponse.model_validate(customer)


@router.put("/{customer_id}", response_model=CustomerResponse, summary="Update a customer")
async def update_customer(
    customer_id: str,
    body: CustomerUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> CustomerResponse:
    """Partially update a customer. Setting ``end_date`` marks them churned."""
    ensure_permission(current_user, permissions.CUSTOMERS_WRITE)
    customer = await customer_service.get_customer_or_404(db, customer_id)

    changes = {
        field: value
        for field, value in body.model_dump(exclude_unset=True).items()
        if value is not None or field not in _REQUIRED_FIELDS
    }
    start_date = changes.get("start_date", customer.start_date)
    end_date = changes.get("end_date", customer.end_date)
    if end_date is not None and end_date < start_date:
        raise ValidationError("end_date must not be before start_date")

    for field, value in changes.items():
        setattr(customer, field, value)

    if customer.type != "business":
        customer.company_name = None

    db.add(customer)
    await db.flush()
    await db.refresh(customer)
    return CustomerResponse.model_validate(customer)


@router.delete("/{customer_id}", response_model=MessageResponse, summary="Delete a customer")
async def delete_customer(
    customer_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MessageResponse:
    ensure_permission(current_user, permissions.CUSTOMERS_DELETE)
    customer = await customer_service.get_customer_or_404(db, customer_id)

    if customer.units:
        raise ConflictError("Cannot delete customer with active unit rentals. Release units first.")

    await db.delete(customer)
    await db.flush()
    return MessageResponse(message="Customer deleted")
