from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

NO_SHOW = "no_show"
LATE_CHECKOUT = "late_checkout"


@dataclass
class PenaltyRecord:
    """Audit entry written by the ledger every time a penalty is applied."""
    user_id: int
    kind: str
    amount: int
    reservation_id: Optional[int] = None
    description: str = ""
    resolved: bool = False
    id: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.now)
