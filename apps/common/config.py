from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal

from django.conf import settings


@dataclass(frozen=True)
class FulfillmentConfig:
    """Tunables for the order, stock, earnings and payout engines.

    Engines take an explicit instance; ``from_settings()`` builds the default
    one from ``settings.FULFILLMENT``.
    """

    min_payout_amount: Decimal = Decimal("0.00")
    default_low_stock_threshold: int = 10
    earning_on_assignment: bool = True
    order_number_prefix: str = "ORD"
    wipe_confirmation_phrase: str = "DELETE ALL ORDERS"

    @classmethod
    def from_settings(cls) -> "FulfillmentConfig":
        raw = dict(getattr(settings, "FULFILLMENT", {}) or {})
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in raw.items() if k in known}
        if "min_payout_amount" in values:
            values["min_payout_amount"] = Decimal(str(values["min_payout_amount"]))
        if "default_low_stock_threshold" in values:
            values["default_low_stock_threshold"] = int(values["default_low_stock_threshold"])
        return cls(**values)


def resolve(config: FulfillmentConfig | None) -> FulfillmentConfig:
    return config if config is not None else FulfillmentConfig.from_settings()
