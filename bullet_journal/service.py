import logging
from datetime import date
from typing import List, Optional, Tuple

import redis

from bullet_journal import config
from bullet_journal.errors import TaskNotFound, TaskValidationError
from bullet_journal.models import Task
from bullet_journal.store import TaskStore
from bullet_journal.view_model import (
    apply_status_transition,
    compute_visible_groups,
    history,
    order_groups,
    select_retention_purge,
)

logger = logging.getLogger(__name__)


def _load(store: TaskStore, owner_id: str, task_id: str) -> Task:
    task = store.get(task_id)
    # other owners' tasks are reported exactly like unknown ids
    if task is None or task.ownerId != owner_id:
        raise TaskNotFound(task_id)
    return task


def _write(store: TaskStore, task: Task) -> Task:
    stored = store.update(task.id, {"status": task.status, "rescheduledTo": task.rescheduledTo})
    if stored is None:
        raise TaskNotFound(task.id)
    return stored


def add_task(store, owner_id, text, reference_date=None, today=None) -> Task:
    if text is None or not text.strip():
        raise TaskValidationError("Task text is required")
    today = today or date.today()
    if reference_date is not None and reference_date > today:
        return store.insert(owner_id, text, status="rescheduled", rescheduled_to=reference_date)
    return store.insert(owner_id, text)


def purge_completed(store, owner_id, cap=None) -> List[str]:
    """Delete completed tasks beyond the retention cap.

    Runs after a completion has already been written, so a storage failure is
    logged and reported as nothing purged rather than failing the completion.
    """
    cap = config.COMPLETED_RETENTION if cap is None else cap
    try:
        doomed = select_retention_purge(store.list(owner_id, status="completed"), cap)
        if doomed:
            removed = store.delete(doomed)
            logger.info("Purged %d old completed tasks for %s", removed, owner_id)
    except redis.RedisError as exc:
        logger.error("Error cleaning up completed tasks for %s: %s", owner_id, exc)
        return []
    return doomed


def _transition(store, owner_id, task_id, action, payload=None) -> Task:
    task = _load(store, owner_id, task_id)
    stored = _write(store, apply_status_transition(task, action, payload))
    if stored.status == "completed":
        purge_completed(store, owner_id)
    return stored


def complete_task(store, owner_id, task_id) -> Task:
    return _transition(store, owner_id, task_id, "complete")


def reschedule_task(store, owner_id, task_id, target_date) -> Task:
    return _transition(store, owner_id, task_id, "reschedule", target_date)


def restore_task(store, owner_id, task_id) -> Task:
    return _transition(store, owner_id, task_id, "restore")


def undo_task(store, owner_id, task_id) -> Task:
    return _transition(store, owner_id, task_id, "undo")


def update_task(store, owner_id, task_id, status=None, rescheduled_to=None) -> Task:
    """Apply a partial ``{status, rescheduledTo}`` update as a status transition.

    A bare ``rescheduled_to`` (no status) reschedules. ``pending`` undoes a
    completed task and restores a rescheduled one. Asking for the status a task
    already has, other than a new reschedule date, returns it unchanged.
    """
    task = _load(store, owner_id, task_id)
    if status is None and rescheduled_to is None:
        return task
    if status == "completed":
        if task.status == "completed":
            return task
        return complete_task(store, owner_id, task_id)
    if status == "rescheduled" or (status is None and rescheduled_to is not None):
        return reschedule_task(store, owner_id, task_id, rescheduled_to)
    if task.status == "completed":
        return undo_task(store, owner_id, task_id)
    if task.status == "rescheduled":
        return restore_task(store, owner_id, task_id)
    return task


def board(store, owner_id, reference_date=None, today=None) -> List[Tuple[str, List[Task]]]:
    today = today or date.today()
    reference_date = reference_date or today
    # completed tasks never show on the board
    tasks = [t for t in store.list(owner_id) if t.status != "completed"]
    groups = compute_visible_groups(tasks, reference_date, today)
    return [(key, groups[key]) for key in order_groups(groups)]


def completed_history(store, owner_id, limit=None) -> List[Task]:
    limit = config.HISTORY_LIMIT if limit is None else limit
    return history(store.list(owner_id, status="completed"), limit)
