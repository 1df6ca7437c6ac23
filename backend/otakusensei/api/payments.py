"""Subscription payment endpoints backed by Stripe payment intents."""

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from otakusensei.api.deps import get_mailer, get_payment_gateway
from otakusensei.auth import get_current_user, require_admin
from otakusensei.database import get_db, is_valid_id
from otakusensei.models import Payment, SubscriptionPlan, User
from otakusensei.schemas.common import APIResponse, CountResponse
from otakusensei.schemas.payment import (
    InitiatePaymentRequest,
    InitiatePaymentResponse,
    PlanListResponse,
    PlanOut,
    VerifyPaymentRequest,
)
from otakusensei.services.mailer import EmailDeliveryError, Mailer
from otakusensei.services.payments import PaymentGatewayError, StripeGateway
from otakusensei.services.subscriptions import activate_premium, count_premium_users, has_active_premium

logger = structlog.get_logger()

router = APIRouter(tags=["Payments"])


@router.post("/initiate-payment", response_model=InitiatePaymentResponse)
async def initiate_payment(
    body: InitiatePaymentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
) -> InitiatePaymentResponse:
    """
    Start checkout for a plan.

    Creates a Stripe payment intent for the plan price and records a pending
    payment. A user can hold only one pending payment, and cannot buy while
    a premium window is still active.
    """
    pending = await db.execute(
        select(Payment.payment_id).where(Payment.user_id == user.user_id, Payment.status == "pending").limit(1)
    )
    if pending.first() is not None:
        raise HTTPException(
            status_code=400,
            detail="You have a pending payment. Please complete or cancel it before initiating a new payment.",
        )

    if has_active_premium(user):
        raise HTTPException(
            status_code=400,
            detail="You already have an active premium subscription. You cannot purchase another until it expires.",
        )

    plan = await db.get(SubscriptionPlan, body.plan_type)
    if plan is None:
        raise HTTPException(status_code=404, detail=f"Plan {body.plan_type} not found")

    try:
        intent = await gateway.create_payment_intent(
            amount_cents=plan.price_cents,
            metadata={"userId": user.user_id, "planType": plan.plan_type},
            description=f"Payment for {plan.plan_type} subscription",
        )
    except PaymentGatewayError as e:
        raise HTTPException(status_code=500, detail=f"Failed to initiate payment: {e}")

    payment = Payment(
        user_id=user.user_id,
        plan_type=plan.plan_type,
        amount=plan.price,
        payment_intent_id=intent.id,
        status="pending",
    )
    db.add(payment)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to initiate payment: duplicate payment intent")

    logger.info("Payment initiated", payment_id=payment.payment_id, user_id=user.user_id, plan_type=plan.plan_type)
    return InitiatePaymentResponse(
        message="Payment initiated successfully",
        client_secret=intent.client_secret,
        payment_id=payment.payment_id,
    )


@router.post("/verify-payment", response_model=APIResponse)
async def verify_payment(
    body: VerifyPaymentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
    mailer: Mailer = Depends(get_mailer),
) -> APIResponse:
    """
    Settle a pending payment against its Stripe payment intent.

    On success the user's premium window becomes [now, now + plan duration].
    Any other intent status marks the payment failed.
    """
    payment = await db.get(Payment, body.payment_id) if is_valid_id(body.payment_id) else None
    if payment is None or payment.user_id != user.user_id:
        raise HTTPException(status_code=404, detail="Payment not found or unauthorized")

    if not payment.is_pending:
        raise HTTPException(status_code=400, detail="Payment already processed")

    try:
        intent = await gateway.retrieve_payment_intent(payment.payment_intent_id)
    except PaymentGatewayError as e:
        raise HTTPException(status_code=500, detail=f"Failed to verify payment: {e}")

    if not intent.succeeded:
        payment.status = "failed"
        await db.commit()
        logger.warning("Payment failed", payment_id=payment.payment_id, intent_status=intent.status)
        raise HTTPException(status_code=400, detail="Payment verification failed")

    plan = await db.get(SubscriptionPlan, payment.plan_type)
    if plan is None:
        raise HTTPException(status_code=404, detail=f"Plan {payment.plan_type} not found")

    payment.status = "success"
    start, end = activate_premium(user, plan.duration_days)
    await db.commit()

    logger.info("Payment verified", payment_id=payment.payment_id, user_id=user.user_id, subscription_end=end.isoformat())

    try:
        await mailer.send_subscription_confirmation_email(user.email, payment.plan_type, start, end)
    except EmailDeliveryError as e:
        raise HTTPException(status_code=500, detail=f"Failed to verify payment: {e}")

    return APIResponse(message="Payment verified successfully. You are now a premium user!")


@router.get("/get-subscription-plans", response_model=PlanListResponse)
async def get_subscription_plans(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PlanListResponse:
    result = await db.execute(select(SubscriptionPlan).order_by(SubscriptionPlan.duration_days))
    return PlanListResponse(
        message="Subscription plans retrieved successfully",
        data=[PlanOut.from_plan(plan) for plan in result.scalars().all()],
    )


@router.get("/premium-users", response_model=CountResponse)
@router.get("/user-subscription", response_model=CountResponse, include_in_schema=False)
async def premium_users(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CountResponse:
    return CountResponse(
        message="Total number of premium users retrieved successfully",
        data=await count_premium_users(db),
    )
