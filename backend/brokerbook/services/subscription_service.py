# Overview: Service-layer operations for subscriptions; plan resolution, upgrades, downgrades and payment confirmation.

"""
Subscription lifecycle.

Allowed transitions:
- none/Basic -> Basic               free activation, ACTIVE immediately
- Basic -> Professional/Enterprise  upgrade; prior row UPGRADED, new row PENDING
                                    until the gateway confirms payment
- Professional/Enterprise -> lower  downgrade; blocked while usage exceeds the
                                    target plan's limits, prior row DOWNGRADED
Anything else (same plan, paid -> other paid) is rejected.

At most one ACTIVE row per user is kept by marking the previous row before a
new one becomes ACTIVE.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime

from ..extensions import db
from ..models import Subscription, SubscriptionStatus, PaymentStatus
from ..time_utils import add_months, utcnow
from .concurrency import lock_for_update, run_with_retry
from .plans import PlanCatalog, PlanName, ResourceType, current_plan_catalog
from .usage_service import count_usage

logger = logging.getLogger(__name__)

PAID_ORDER_STATUSES = {"PAID", "SUCCESS"}
FAILED_ORDER_STATUSES = {"FAILED", "CANCELLED"}


class SubscriptionError(Exception):
    """Raised for rejected plan changes and unknown orders."""
    def __init__(self, message: str, status_code: int = 400, details: dict | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details or {}


class DowngradeBlockedError(SubscriptionError):
    """Downgrade refused because current usage exceeds the target plan."""
    def __init__(self, plan: PlanName, violations: list[str]):
        message = (
            f"Cannot downgrade to {plan.value} plan:\n"
            + "\n".join(violations)
            + f"\n\nPlease reduce your usage to fit within the {plan.value} plan limits before downgrading."
        )
        super().__init__(message, 400, details={"violations": violations})
        self.violations = violations


@dataclass(frozen=True)
class ActivePlan:
    plan_name: PlanName
    subscription: Subscription | None

    def to_dict(self) -> dict:
        return {
            "plan_name": self.plan_name.value,
            "subscription": self.subscription.to_dict() if self.subscription else None,
        }


def _active_query(user_id: str):
    return (
        db.session.query(Subscription)
        .filter(
            Subscription.user_id == user_id,
            Subscription.status == SubscriptionStatus.ACTIVE,
        )
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
    )


def get_active_subscription(user_id: str) -> Subscription | None:
    return _active_query(user_id).first()


def resolve_active_plan(user_id: str) -> ActivePlan:
    """Latest ACTIVE subscription's plan, or Basic when the user has none."""
    subscription = get_active_subscription(user_id)
    if subscription is None:
        return ActivePlan(PlanName.BASIC, None)
    return ActivePlan(PlanName.parse(subscription.plan_name), subscription)


def _order_id(prefix: str, user_id: str, now: datetime) -> str:
    stamp = str(int(now.timestamp() * 1000))[-8:]
    return f"{prefix}_{stamp}_{user_id[:8]}_{secrets.token_hex(3)}"


def _parse_plan(plan_name) -> PlanName:
    try:
        return PlanName.parse(plan_name)
    except ValueError as exc:
        raise SubscriptionError(str(exc)) from None


def create_subscription(
    user_id: str,
    plan_name: str,
    *,
    duration: int | None = None,
    catalog: PlanCatalog | None = None,
    now: datetime | None = None,
) -> Subscription:
    """
    Start a plan purchase or free activation.

    Basic is activated immediately. Paid plans are created PENDING and become
    ACTIVE through confirm_payment once the gateway reports success.
    """
    catalog = catalog or current_plan_catalog()
    plan = _parse_plan(plan_name)
    if duration is not None and (not isinstance(duration, int) or isinstance(duration, bool) or duration < 1):
        raise SubscriptionError("duration must be a positive number of months")

    def _op():
        current_time = now or utcnow()
        current = lock_for_update(_active_query(user_id)).first()

        if current is not None:
            current_plan = PlanName.parse(current.plan_name)
            if current_plan is plan:
                raise SubscriptionError(f"You already have an active {plan.value} subscription.")
            if current_plan is PlanName.BASIC:
                current.status = SubscriptionStatus.UPGRADED
                current.end_date = current_time
            else:
                raise SubscriptionError(
                    f"Cannot change from {current_plan.value} to {plan.value}. "
                    "Please contact support for plan changes."
                )

        if plan is PlanName.BASIC:
            subscription = Subscription(
                user_id=user_id,
                plan_name=plan.value,
                plan_price=0.0,
                duration=0,
                order_id=_order_id("FREE", user_id, current_time),
                status=SubscriptionStatus.ACTIVE,
                payment_status=PaymentStatus.COMPLETED,
                start_date=current_time,
                end_date=None,
            )
        else:
            subscription = Subscription(
                user_id=user_id,
                plan_name=plan.value,
                plan_price=catalog.price_for(plan),
                duration=duration or 1,
                order_id=_order_id("ORD", user_id, current_time),
                status=SubscriptionStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
            )

        db.session.add(subscription)
        db.session.commit()
        return subscription

    subscription = run_with_retry(_op)
    logger.info(
        "Subscription %s created for user %s (%s, %s)",
        subscription.order_id, user_id, subscription.plan_name, subscription.status,
    )
    return subscription


def confirm_payment(order_id: str, order_status: str, *, now: datetime | None = None) -> Subscription:
    """
    Apply a gateway result to a subscription.

    PAID/SUCCESS activates the row (end_date = start + duration months, open
    ended when duration is 0). FAILED/CANCELLED cancels a row that is still
    PENDING. Repeated callbacks are harmless.
    """
    status = (order_status or "").strip().upper()

    def _op():
        current_time = now or utcnow()
        subscription = lock_for_update(
            db.session.query(Subscription).filter_by(order_id=order_id)
        ).first()
        if not subscription:
            raise SubscriptionError("Subscription not found", 404)

        if status in PAID_ORDER_STATUSES and subscription.status == SubscriptionStatus.PENDING:
            others = _active_query(subscription.user_id).filter(Subscription.id != subscription.id).all()
            for other in others:
                other.status = SubscriptionStatus.UPGRADED
                other.end_date = current_time
            subscription.status = SubscriptionStatus.ACTIVE
            subscription.payment_status = PaymentStatus.COMPLETED
            subscription.start_date = current_time
            subscription.end_date = (
                add_months(current_time, subscription.duration) if subscription.duration else None
            )
        elif status in FAILED_ORDER_STATUSES and subscription.status == SubscriptionStatus.PENDING:
            subscription.status = SubscriptionStatus.CANCELLED
            subscription.payment_status = PaymentStatus.FAILED

        db.session.commit()
        return subscription

    subscription = run_with_retry(_op)
    logger.info("Order %s reported %s; subscription now %s", order_id, status, subscription.status)
    return subscription


def enforce_downgrade_limits(
    user_id: str,
    target_plan,
    *,
    catalog: PlanCatalog | None = None,
    now: datetime | None = None,
) -> list[str]:
    """
    Violations that would block moving to `target_plan`; empty means eligible.

    Usage is recounted for every finite limit on the target plan.
    """
    catalog = catalog or current_plan_catalog()
    plan = _parse_plan(target_plan)
    limits = catalog.limits_for(plan)
    violations: list[str] = []

    for resource in ResourceType:
        if limits.is_unlimited(resource):
            continue
        limit = limits.limit_for(resource)
        usage = count_usage(user_id, resource, now)
        if usage <= limit:
            continue
        if resource is ResourceType.INVOICES:
            violations.append(
                f"You have created {usage} invoices this month but {plan.value} plan "
                f"allows only {limit} per month."
            )
        else:
            violations.append(
                f"You have {usage} {resource.value} but {plan.value} plan allows only {limit}."
            )
    return violations


def downgrade_plan(
    user_id: str,
    plan_name: str | None,
    *,
    catalog: PlanCatalog | None = None,
    now: datetime | None = None,
) -> Subscription:
    """
    Move an active paid subscription to a lower tier.

    Nothing is written unless every eligibility check passes.
    """
    catalog = catalog or current_plan_catalog()
    if not plan_name:
        raise SubscriptionError("Plan name is required")

    def _op():
        current_time = now or utcnow()
        current = lock_for_update(_active_query(user_id)).first()
        if not current:
            raise SubscriptionError("No active subscription found", 404)

        target = _parse_plan(plan_name)
        current_plan = PlanName.parse(current.plan_name)
        if target.level >= current_plan.level:
            raise SubscriptionError("Can only downgrade to a lower tier plan")

        violations = enforce_downgrade_limits(user_id, target, catalog=catalog, now=current_time)
        if violations:
            raise DowngradeBlockedError(target, violations)

        current.status = SubscriptionStatus.DOWNGRADED
        current.end_date = current_time

        is_free = target is PlanName.BASIC
        subscription = Subscription(
            user_id=user_id,
            plan_name=target.value,
            plan_price=catalog.price_for(target),
            duration=0 if is_free else 1,
            order_id=_order_id("DOWNGRADE", user_id, current_time),
            status=SubscriptionStatus.ACTIVE,
            payment_status=PaymentStatus.COMPLETED,
            start_date=current_time,
            end_date=None if is_free else add_months(current_time, 1),
        )
        db.session.add(subscription)
        db.session.commit()
        return subscription

    subscription = run_with_retry(_op)
    logger.info("User %s downgraded to %s", user_id, subscription.plan_name)
    return subscription


def expire_subscriptions(now: datetime | None = None) -> int:
    """Mark ACTIVE rows whose end_date has passed as EXPIRED. Returns the count."""
    current_time = now or utcnow()
    expired = db.session.query(Subscription).filter(
        Subscription.status == SubscriptionStatus.ACTIVE,
        Subscription.end_date.isnot(None),
        Subscription.end_date < current_time,
    ).all()
    for subscription in expired:
        subscription.status = SubscriptionStatus.EXPIRED
    db.session.commit()
    return len(expired)
