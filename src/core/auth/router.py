from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import AdminUser, CurrentUser, SuperAdminUser
from src.core.auth.models import UserRole
from src.core.auth.schemas import (
    LoginRequest,
    LoginResponse,
    OperatorCreate,
    OperatorResponse,
    OperatorUpdate,
    PasswordChange,
    RefreshRequest,
    TokenPair,
)
from src.core.auth.service import AuthService
from src.core.database import get_db
from src.shared.schemas import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=ApiResponse[LoginResponse])
async def login(request: Request, data: LoginRequest, db: AsyncSession = Depends(get_db)):
    user, access_token, refresh_token = await AuthService(db).authenticate(
        data.email,
        data.password,
        ip_address=request.client.host if request.client else None,
    )
    return ApiResponse(
        data=LoginResponse(
            user=OperatorResponse.model_validate(user),
            access_token=access_token,
            refresh_token=refresh_token,
        ),
        message="Login successful",
    )


@router.post("/refresh", response_model=ApiResponse[TokenPair])
async def refresh(data: RefreshRequest, db: AsyncSession = Depends(get_db)):
    access_token, refresh_token = await AuthService(db).refresh_tokens(data.refresh_token)
    return ApiResponse(data=TokenPair(access_token=access_token, refresh_token=refresh_token))


@router.get("/me", response_model=ApiResponse[OperatorResponse])
async def me(current_user: CurrentUser):
    return ApiResponse(data=OperatorResponse.model_validate(current_user))


@router.post("/me/password", response_model=ApiResponse[None])
async def change_password(
    data: PasswordChange, current_user: CurrentUser, db: AsyncSession = Depends(get_db)
):
    await AuthService(db).change_password(current_user, data.current_password, data.new_password)
    return ApiResponse(data=None, message="Password changed")


@router.get("/operators", response_model=ApiResponse[PaginatedResponse[OperatorResponse]])
async def list_operators(
    current_user: AdminUser,
    role: UserRole | None = Query(None),
    is_active: bool | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    users, total = await AuthService(db).list_users(
        role=role, is_active=is_active, page=page, limit=limit
    )
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[OperatorResponse.model_validate(u) for u in users],
            total=total,
            page=page,
            limit=limit,
        )
    )


@router.post(
    "/operators",
    response_model=ApiResponse[OperatorResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_operator(
    data: OperatorCreate, current_user: SuperAdminUser, db: AsyncSession = Depends(get_db)
):
    user = await AuthService(db).create_user(
        email=data.email,
        password=data.password,
        full_name=data.full_name,
        role=data.role,
        created_by_id=current_user.id,
    )
    return ApiResponse(data=OperatorResponse.model_validate(user), message="Operator created")


@router.patch("/operators/{user_id}", response_model=ApiResponse[OperatorResponse])
async def update_operator(
    user_id: int,
    data: OperatorUpdate,
    current_user: SuperAdminUser,
    db: AsyncSession = Depends(get_db),
):
    user = await AuthService(db).update_user(user_id, data, updated_by=current_user)
    return ApiResponse(data=OperatorResponse.model_validate(user), message="Operator updated")
