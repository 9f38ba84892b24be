from datetime import date
from typing import Optional, Union, Literal

from pydantic import BaseModel

Status = Literal["pending", "completed", "rescheduled"]


class TaskUpdate(BaseModel):
    status: Optional[Status] = None
    # "" is kept so an empty reschedule date can be rejected as a 400
    rescheduledTo: Optional[Union[date, Literal[""]]] = None
