from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel

Status = Literal["pending", "completed", "rescheduled"]


class Task(BaseModel):
    id: str
    text: str
    status: Status = "pending"
    rescheduledTo: Optional[date] = None
    createdAt: datetime
    ownerId: str
