from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


@dataclass
class Notification:
    """In-app notification shown to the user after a reservation changes."""
    user_id: int
    title: str
    body: str
    is_read: bool = False
    id: Optional[int] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
