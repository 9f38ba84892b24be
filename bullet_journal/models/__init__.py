from .Task import Task, Status
from .TasksCreate import TaskCreate
from .TaskUpdate import TaskUpdate
from .Group import Group
from .Auth import Credentials, ResetRequest, PasswordUpdate, Session
