"""Admin API endpoints: user management and plan pricing."""

from typing import Literal

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from otakusensei.api.deps import ensure_id
from otakusensei.auth import require_admin
from otakusensei.database import get_db
from otakusensei.models import SubscriptionPlan, User
from otakusensei.schemas.common import Pagination
from otakusensei.schemas.payment import PlanIn, PlanOut, PlanResponse
from otakusensei.schemas.user import (
    UpdateRoleRequest,
    UserDataResponse,
    UserListData,
    UserListResponse,
    UserOut,
)
from otakusensei.services.users import get_user_by_id

logger = structlog.get_logger()

router = APIRouter(tags=["Admin"])

USER_SORT_COLUMNS = {
    "createdAt": User.created_at,
    "firstName": User.first_name,
    "email": User.email,
    "role": User.role,
}


async def _get_user_or_404(db: AsyncSession, user_id: str) -> User:
    user = await get_user_by_id(db, ensure_id(user_id, "User"))
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/admin/getusers", response_model=UserListResponse)
async def get_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: Literal["createdAt", "firstName", "email", "role"] = Query("createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    role: Literal["user", "admin"] | None = Query(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> UserListResponse:
    query = select(User)
    count_query = select(func.count()).select_from(User)
    if role:
        query = query.where(User.role == role)
        count_query = count_query.where(User.role == role)

    column = USER_SORT_COLUMNS[sort_by]
    ordering = column.asc() if sort_order == "asc" else column.desc()
    result = await db.execute(
        query.order_by(ordering, User.user_id).offset((page - 1) * limit).limit(limit)
    )
    total = int(await db.scalar(count_query) or 0)

    return UserListResponse(
        message="Users retrieved successfully",
        data=UserListData(
            users=[UserOut.from_user(u) for u in result.scalars().all()],
            pagination=Pagination.build(total, page, limit),
        ),
    )


@router.get("/admin/getUserById/{user_id}", response_model=UserDataResponse)
async def get_user(
    user_id: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> UserDataResponse:
    user = await _get_user_or_404(db, user_id)
    return UserDataResponse(message="User retrieved successfully", data=UserOut.from_user(user))


@router.patch("/admin/updateUserRole/{user_id}", response_model=UserDataResponse)
async def update_user_role(
    user_id: str,
    body: UpdateRoleRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> UserDataResponse:
    """Promote or demote a user. Admins cannot change their own role."""
    user = await _get_user_or_404(db, user_id)
    if user.user_id == admin.user_id:
        raise HTTPException(status_code=403, detail="You cannot change your own role")

    user.role = body.role
    await db.commit()

    logger.info("User role updated", user_id=user.user_id, role=body.role, admin_id=admin.user_id)
    return UserDataResponse(message="User role updated successfully", data=UserOut.from_user(user))


@router.post("/admin/setSubscriptionPlan", response_model=PlanResponse)
@router.post("/update-subscription", response_model=PlanResponse)
async def set_subscription_plan(
    body: PlanIn,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> PlanResponse:
    """Create or update the price and duration of a plan type."""
    plan = await db.get(SubscriptionPlan, body.plan_type)
    if plan is None:
        plan = SubscriptionPlan(plan_type=body.plan_type)
        db.add(plan)
    plan.price = body.price
    plan.duration_days = body.duration_days
    await db.commit()

    logger.info("Subscription plan set", plan_type=plan.plan_type, price=str(plan.price), admin_id=admin.user_id)
    return PlanResponse(message=f"Plan {plan.plan_type} updated successfully", data=PlanOut.from_plan(plan))
