"""API endpoints for Items module."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import AdminUser, AnyUser, SuperAdminUser
from src.core.database.session import get_db
from src.modules.items.models import Item, LocationType
from src.modules.items.schemas import (
    BrandCreate,
    BrandResponse,
    BrandUpdate,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ItemCreate,
    ItemResponse,
    ItemUpdate,
    UnitCreate,
    UnitResponse,
    UnitUpdate,
)
from src.modules.items.service import ItemService
from src.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/items", tags=["Items"])


def _item_to_response(item: Item) -> ItemResponse:
    return ItemResponse(
        id=item.id,
        title=item.title,
        description=item.description,
        category_id=item.category_id,
        category_title=item.category.title if item.category else None,
        brand_id=item.brand_id,
        brand_title=item.brand.title if item.brand else None,
        unit_id=item.unit_id,
        supplier_id=item.supplier_id,
        warehouse_id=item.warehouse_id,
        warehouse_title=item.warehouse.title if item.warehouse else None,
        assigned_to_person_id=item.assigned_to_person_id,
        assigned_to_person_name=(
            item.assigned_to_person.title if item.assigned_to_person else None
        ),
        current_location_type=item.current_location_type,
        quantity=item.quantity,
        serial_number=item.serial_number,
        barcode=item.barcode,
        asset_tag=item.asset_tag,
        model=item.model,
        year=item.year,
        buying_price=item.buying_price,
        notes=item.notes,
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


# --- Category Endpoints ---


@router.post(
    "/categories",
    response_model=ApiResponse[CategoryResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_category(
    data: CategoryCreate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = ItemService(db)
    category = await service.create_category(data, current_user.id)
    return ApiResponse(
        message="Category created successfully",
        data=CategoryResponse.model_validate(category),
    )


@router.get("/categories", response_model=ApiResponse[list[CategoryResponse]])
async def list_categories(
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    service = ItemService(db)
    categories = await service.list_categories()
    return ApiResponse(data=[CategoryResponse.model_validate(c) for c in categories])


@router.get("/categories/{category_id}", response_model=ApiResponse[CategoryResponse])
async def get_category(
    category_id: int,
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    service = ItemService(db)
    category = await service.get_category_by_id(category_id)
    return ApiResponse(data=CategoryResponse.model_validate(category))


@router.patch("/categories/{category_id}", response_model=ApiResponse[CategoryResponse])
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = ItemService(db)
    category = await service.update_category(category_id, data, current_user.id)
    return ApiResponse(
        message="Category updated successfully",
        data=CategoryResponse.model_validate(category),
    )


@router.delete("/categories/{category_id}", response_model=ApiResponse[None])
async def delete_category(
    category_id: int,
    current_user: SuperAdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Delete an unused category. Requires SUPER_ADMIN role."""
    service = ItemService(db)
    await service.delete_category(category_id, current_user.id)
    return ApiResponse(data=None, message="Category deleted")


# --- Brand Endpoints ---


@router.post(
    "/brands",
    response_model=ApiResponse[BrandResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_brand(
    data: BrandCreate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = ItemService(db)
    brand = await service.create_brand(data, current_user.id)
    return ApiResponse(message="Brand created successfully", data=BrandResponse.model_validate(brand))


@router.get("/brands", response_model=ApiResponse[list[BrandResponse]])
async def list_brands(
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    service = ItemService(db)
    brands = await service.list_brands()
    return ApiResponse(data=[BrandResponse.model_validate(b) for b in brands])


@router.get("/brands/{brand_id}", response_model=ApiResponse[BrandResponse])
async def get_brand(
    brand_id: int,
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    service = ItemService(db)
    brand = await service.get_brand_by_id(brand_id)
    return ApiResponse(data=BrandResponse.model_validate(brand))


@router.patch("/brands/{brand_id}", response_model=ApiResponse[BrandResponse])
async def update_brand(
    brand_id: int,
    data: BrandUpdate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = ItemService(db)
    brand = await service.update_brand(brand_id, data, current_user.id)
    return ApiResponse(message="Brand updated successfully", data=BrandResponse.model_validate(brand))


@router.delete("/brands/{brand_id}", response_model=ApiResponse[None])
async def delete_brand(
    brand_id: int,
    current_user: SuperAdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = ItemService(db)
    await service.delete_brand(brand_id, current_user.id)
    return ApiResponse(data=None, message="Brand deleted")


# --- Unit Endpoints ---


@router.post(
    "/units",
    response_model=ApiResponse[UnitResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_unit(
    data: UnitCreate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = ItemService(db)
    unit = await service.create_unit(data, current_user.id)
    return ApiResponse(message="Unit created successfully", data=UnitResponse.model_validate(unit))


@router.get("/units", response_model=ApiResponse[list[UnitResponse]])
async def list_units(
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    service = ItemService(db)
    units = await service.list_units()
    return ApiResponse(data=[UnitResponse.model_validate(u) for u in units])


@router.get("/units/{unit_id}", response_model=ApiResponse[UnitResponse])
async def get_unit(
    unit_id: int,
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    service = ItemService(db)
    unit = await service.get_unit_by_id(unit_id)
    return ApiResponse(data=UnitResponse.model_validate(unit))


@router.patch("/units/{unit_id}", response_model=ApiResponse[UnitResponse])
async def update_unit(
    unit_id: int,
    data: UnitUpdate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = ItemService(db)
    unit = await service.update_unit(unit_id, data, current_user.id)
    return ApiResponse(message="Unit updated successfully", data=UnitResponse.model_validate(unit))


@router.delete("/units/{unit_id}", response_model=ApiResponse[None])
async def delete_unit(
    unit_id: int,
    current_user: SuperAdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = ItemService(db)
    await service.delete_unit(unit_id, current_user.id)
    return ApiResponse(data=None, message="Unit deleted")


# --- Item Endpoints ---


@router.post(
    "",
    response_model=ApiResponse[ItemResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_item(
    data: ItemCreate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Register a new item in a warehouse."""
    service = ItemService(db)
    item = await service.create_item(data, current_user.id)
    item = await service.get_item_by_id(item.id)
    return ApiResponse(message="Item created successfully", data=_item_to_response(item))


@router.get("", response_model=ApiResponse[PaginatedResponse[ItemResponse]])
async def list_items(
    current_user: AnyUser,
    location_type: LocationType | None = Query(None),
    warehouse_id: int | None = Query(None),
    person_id: int | None = Query(None),
    category_id: int | None = Query(None),
    search: str | None = Query(None, description="Title, serial number, asset tag or barcode"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    """List items with optional filters."""
    service = ItemService(db)
    items, total = await service.list_items(
        location_type=location_type,
        warehouse_id=warehouse_id,
        person_id=person_id,
        category_id=category_id,
        search=search,
        page=page,
        limit=limit,
    )
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[_item_to_response(i) for i in items],
            total=total,
            page=page,
            limit=limit,
        )
    )


@router.get("/{item_id}", response_model=ApiResponse[ItemResponse])
async def get_item(
    item_id: int,
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    service = ItemService(db)
    item = await service.get_item_by_id(item_id)
    return ApiResponse(data=_item_to_response(item))


@router.patch("/{item_id}", response_model=ApiResponse[ItemResponse])
async def update_item(
    item_id: int,
    data: ItemUpdate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Update descriptive fields. Use the custody endpoints to move an item."""
    service = ItemService(db)
    await service.update_item(item_id, data, current_user.id)
    item = await service.get_item_by_id(item_id)
    return ApiResponse(message="Item updated successfully", data=_item_to_response(item))


@router.delete("/{item_id}", response_model=ApiResponse[None])
async def delete_item(
    item_id: int,
    current_user: SuperAdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = ItemService(db)
    await service.delete_item(item_id, current_user.id)
    return ApiResponse(data=None, message="Item deleted")
