from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel


class CreateSubscriptionRequest(BaseModel):
    laundry_id: int
    tier: Literal["premium", "featured"]
    billing_cycle: Literal["monthly", "annually"] = "monthly"
    # Ignored: the charged amount comes from premium.PLANS.
    amount: Optional[int] = None


class CreateSubscriptionResponse(BaseModel):
    client_secret: str
    subscription_id: int
    amount: int
    amount_display: str
