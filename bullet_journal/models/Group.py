from typing import List

from pydantic import BaseModel

from .Task import Task


class Group(BaseModel):
    key: str
    tasks: List[Task]
