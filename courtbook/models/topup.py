from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

PENDING = "pending"
CONFIRMED = "confirmed"
FAILED = "failed"


@dataclass
class TopUp:
    user_id: int
    coins: int
    amount_cents: int
    currency: str = "thb"
    status: str = PENDING
    gateway_ref: Optional[str] = None
    details: dict = field(default_factory=dict)
    id: Optional[int] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
