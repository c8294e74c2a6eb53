# Overview: Plan limit and feature checks run before resource creation and gated features.

from __future__ import annotations

from datetime import datetime

from .plans import Feature, PlanCatalog, ResourceType, current_plan_catalog
from .subscription_service import resolve_active_plan
from .usage_service import count_usage


class PlanLimitError(Exception):
    """Raised when the caller's plan does not allow the action (403)."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _limit_message(resource: ResourceType, limit: int, plan: str) -> str:
    if resource is ResourceType.INVOICES:
        return (
            f"You have reached the maximum number of invoices ({limit}) for this month "
            f"on your {plan} plan. Please upgrade to create more invoices."
        )
    return (
        f"You have reached the maximum number of {resource.value} ({limit}) for your "
        f"{plan} plan. Please upgrade to add more {resource.value}."
    )


def check_limit(
    user_id: str,
    resource,
    *,
    catalog: PlanCatalog | None = None,
    now: datetime | None = None,
) -> None:
    """Raise PlanLimitError when creating one more `resource` would exceed the plan."""
    catalog = catalog or current_plan_catalog()
    resource = ResourceType(resource)
    plan = resolve_active_plan(user_id).plan_name
    limits = catalog.limits_for(plan)
    if limits.is_unlimited(resource):
        return

    limit = limits.limit_for(resource)
    current = count_usage(user_id, resource, now)
    if current >= limit:
        raise PlanLimitError(
            _limit_message(resource, limit, plan.value),
            details={
                "plan_name": plan.value,
                "resource": resource.value,
                "limit": limit,
                "current_count": current,
            },
        )


def check_feature(user_id: str, feature, *, catalog: PlanCatalog | None = None) -> None:
    """Raise PlanLimitError when the user's plan does not include `feature`."""
    catalog = catalog or current_plan_catalog()
    feature = Feature(feature)
    plan = resolve_active_plan(user_id).plan_name
    if not catalog.limits_for(plan).allows(feature):
        raise PlanLimitError(
            f"This feature is not available for your {plan.value} plan. "
            "Please upgrade to access this feature.",
            details={"plan_name": plan.value, "feature": feature.value},
        )


def usage_entry(limits, resource: ResourceType, current: int) -> dict:
    unlimited = limits.is_unlimited(resource)
    limit = None if unlimited else limits.limit_for(resource)
    return {
        "current_count": current,
        "limit": limit,
        "is_unlimited": unlimited,
        "can_add_more": unlimited or current < limit,
        "remaining_slots": None if unlimited else max(0, limit - current),
    }


def usage_summary(
    user_id: str,
    *,
    catalog: PlanCatalog | None = None,
    now: datetime | None = None,
) -> dict:
    """Per-resource usage against the active plan, for dashboards."""
    catalog = catalog or current_plan_catalog()
    plan = resolve_active_plan(user_id).plan_name
    limits = catalog.limits_for(plan)

    resources = {
        resource.value: usage_entry(limits, resource, count_usage(user_id, resource, now))
        for resource in ResourceType
    }

    return {
        "plan_name": plan.value,
        "plan": limits.to_dict(),
        "resources": resources,
    }
