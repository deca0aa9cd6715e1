from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel


class ClaimRequest(BaseModel):
    laundry_id: int
    email: str
    phone: Optional[str] = None
    verification_method: Literal["document", "utility", "phone", "mail"] = "document"
    profile: Dict[str, Any] = {}


class NotificationStatusUpdate(BaseModel):
    status: Literal["unread", "read", "approved", "rejected"]
