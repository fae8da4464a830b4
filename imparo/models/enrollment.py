from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Enrollment:
    learner_id: int
    enrolled_at: datetime
    display_name: str = ""
    active: bool = True
    created_at: Optional[datetime] = None
