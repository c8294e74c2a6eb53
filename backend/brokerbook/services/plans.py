# Overview: Subscription plan catalog; plan names, resources, features and their limits.

"""
Plan catalog.

Plans, resources and features are closed enumerations. A PlanCatalog must
cover every PlanName, so a lookup can never silently fall back to a default
plan because of a misspelt key.

The catalog is an immutable value. create_app stores one on the app config
(PLAN_CATALOG) and services receive it as a parameter, which lets tests hand
in a custom table without patching globals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from flask import current_app


UNLIMITED = -1


class PlanName(str, Enum):
    BASIC = "Basic"
    PROFESSIONAL = "Professional"
    ENTERPRISE = "Enterprise"

    @property
    def level(self) -> int:
        return _PLAN_LEVELS[self]

    @classmethod
    def parse(cls, value) -> "PlanName":
        """Strict lookup by display name; raises ValueError("Invalid plan name")."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError("Invalid plan name") from None


_PLAN_LEVELS = {
    PlanName.BASIC: 1,
    PlanName.PROFESSIONAL: 2,
    PlanName.ENTERPRISE: 3,
}


class ResourceType(str, Enum):
    CLIENTS = "clients"
    BOOKS = "books"
    INVOICES = "invoices"


class Feature(str, Enum):
    PAYMENT_REMINDERS = "payment_reminders"
    AI_INSIGHTS = "ai_insights"
    WHATSAPP_AUTOMATION = "whatsapp_automation"
    BULK_EMAIL = "bulk_email"
    API_ACCESS = "api_access"
    MULTI_USER = "multi_user"
    ANALYTICS = "analytics"
    WHITE_LABEL = "white_label"


@dataclass(frozen=True)
class PlanLimits:
    clients: int
    books: int
    invoices_per_month: int
    features: frozenset = field(default_factory=frozenset)
    monthly_price: float = 0.0

    def limit_for(self, resource: ResourceType) -> int:
        resource = ResourceType(resource)
        if resource is ResourceType.CLIENTS:
            return self.clients
        if resource is ResourceType.BOOKS:
            return self.books
        return self.invoices_per_month

    def is_unlimited(self, resource: ResourceType) -> bool:
        return self.limit_for(resource) == UNLIMITED

    def allows(self, feature: Feature) -> bool:
        return Feature(feature) in self.features

    def to_dict(self) -> dict:
        return {
            "clients": self.clients,
            "books": self.books,
            "invoices_per_month": self.invoices_per_month,
            "monthly_price": self.monthly_price,
            "features": {f.value: f in self.features for f in Feature},
        }


@dataclass(frozen=True)
class PlanCatalog:
    plans: Mapping[PlanName, PlanLimits]

    def __post_init__(self):
        missing = [p.value for p in PlanName if p not in self.plans]
        if missing:
            raise ValueError(f"Plan catalog is missing: {', '.join(missing)}")
        object.__setattr__(self, "plans", MappingProxyType(dict(self.plans)))

    def limits_for(self, plan: PlanName) -> PlanLimits:
        return self.plans[PlanName.parse(plan)]

    def price_for(self, plan: PlanName) -> float:
        return self.limits_for(plan).monthly_price


_PAID_FEATURES = frozenset({
    Feature.PAYMENT_REMINDERS,
    Feature.AI_INSIGHTS,
    Feature.WHATSAPP_AUTOMATION,
    Feature.BULK_EMAIL,
})

DEFAULT_PLAN_CATALOG = PlanCatalog({
    PlanName.BASIC: PlanLimits(
        clients=5,
        books=1,
        invoices_per_month=20,
        features=frozenset(),
        monthly_price=0.0,
    ),
    PlanName.PROFESSIONAL: PlanLimits(
        clients=UNLIMITED,
        books=UNLIMITED,
        invoices_per_month=UNLIMITED,
        features=_PAID_FEATURES,
        monthly_price=999.0,
    ),
    PlanName.ENTERPRISE: PlanLimits(
        clients=UNLIMITED,
        books=UNLIMITED,
        invoices_per_month=UNLIMITED,
        features=frozenset(Feature),
        monthly_price=2999.0,
    ),
})


def current_plan_catalog() -> PlanCatalog:
    """Catalog configured on the running app."""
    return current_app.config.get("PLAN_CATALOG") or DEFAULT_PLAN_CATALOG
