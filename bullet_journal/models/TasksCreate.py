import datetime
from typing import Optional

from pydantic import BaseModel


class TaskCreate(BaseModel):
    text: Optional[str] = None
    date: Optional[datetime.date] = None
