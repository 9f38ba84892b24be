"""Grouping, ordering and status transition rules for a user's tasks.

Everything here is pure: functions take task records and return new values
without touching a store or mutating their arguments.
"""
from datetime import date
from typing import Dict, Iterable, List, Literal, Optional, Union

from bullet_journal.errors import InvalidTransition, TaskValidationError
from bullet_journal.models import Task

TODAY_KEY = "Today"
COMPLETED_KEY = "Completed"

Action = Literal["complete", "reschedule", "restore", "undo"]

TRANSITIONS = {
    ("pending", "complete"): "completed",
    ("rescheduled", "complete"): "completed",
    ("pending", "reschedule"): "rescheduled",
    ("rescheduled", "reschedule"): "rescheduled",
    ("rescheduled", "restore"): "pending",
    ("completed", "undo"): "pending",
}


def _creation_order(task: Task):
    return (task.createdAt, task.id)


def compute_visible_groups(
    tasks: Iterable[Task], reference_date: date, today: Optional[date] = None
) -> Dict[str, List[Task]]:
    """Bucket the tasks shown for ``reference_date``.

    Pending tasks only show when the viewed day is the real current day, under
    ``"Today"``. Rescheduled tasks show on the day they were moved to, keyed by
    that date. Completed tasks never show here.
    """
    if today is None:
        today = date.today()
    groups: Dict[str, List[Task]] = {}
    for task in tasks:
        if task.status == "pending" and reference_date == today:
            key = TODAY_KEY
        elif task.status == "rescheduled" and task.rescheduledTo == reference_date:
            key = task.rescheduledTo.isoformat()
        else:
            continue
        groups.setdefault(key, []).append(task)
    return {key: sorted(members, key=_creation_order) for key, members in groups.items()}


def order_groups(group_keys: Iterable[str], today_key: str = TODAY_KEY) -> List[str]:
    def rank(key):
        if key == today_key:
            return (0, date.min)
        if key == COMPLETED_KEY:
            return (2, date.max)
        return (1, date.fromisoformat(key))

    return sorted(group_keys, key=rank)


def check_invariant(task: Task) -> None:
    if (task.status == "rescheduled") != (task.rescheduledTo is not None):
        raise TaskValidationError(
            f"Task {task.id} is {task.status} with rescheduledTo={task.rescheduledTo}"
        )


def apply_status_transition(
    task: Task, action: Action, payload: Optional[Union[date, str]] = None
) -> Task:
    """Return a copy of ``task`` after ``action``; the input is left untouched.

    ``payload`` is the target date for ``reschedule`` and ignored otherwise.
    """
    new_status = TRANSITIONS.get((task.status, action))
    if new_status is None:
        raise InvalidTransition(task.status, action)

    rescheduled_to = None
    if action == "reschedule":
        if not payload:
            raise TaskValidationError("A reschedule date is required")
        try:
            rescheduled_to = payload if isinstance(payload, date) else date.fromisoformat(payload)
        except ValueError:
            raise TaskValidationError(f"Invalid reschedule date: {payload!r}")

    updated = task.model_copy(update={"status": new_status, "rescheduledTo": rescheduled_to})
    check_invariant(updated)
    return updated


def select_retention_purge(completed_tasks: Iterable[Task], cap: int = 50) -> List[str]:
    """Ids of the oldest completed tasks beyond ``cap``."""
    ordered = sorted((t for t in completed_tasks if t.status == "completed"), key=_creation_order)
    excess = len(ordered) - cap
    if excess <= 0:
        return []
    return [t.id for t in ordered[:excess]]


def history(tasks: Iterable[Task], limit: int = 50) -> List[Task]:
    completed = [t for t in tasks if t.status == "completed"]
    completed.sort(key=_creation_order, reverse=True)
    return completed[:limit]
