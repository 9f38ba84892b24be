import json
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Protocol

import redis

from bullet_journal import config
from bullet_journal.models import Task

logger = logging.getLogger(__name__)

# id, createdAt and ownerId are fixed at insert
MUTABLE_FIELDS = ("text", "status", "rescheduledTo")


class TaskStore(Protocol):
    def list(self, owner_id: str, status: Optional[str] = None) -> List[Task]: ...

    def get(self, task_id: str) -> Optional[Task]: ...

    def insert(self, owner_id: str, text: str, status: str = "pending", rescheduled_to=None) -> Task: ...

    def update(self, task_id: str, fields: dict) -> Optional[Task]: ...

    def delete(self, task_ids: Iterable[str]) -> int: ...


def _now():
    return datetime.now(timezone.utc)


def _merge(task: Task, fields: dict) -> Task:
    changes = {k: v for k, v in fields.items() if k in MUTABLE_FIELDS}
    # validate again so string dates are coerced the same way as on insert
    return Task.model_validate({**task.model_dump(), **changes})


def _by_creation(tasks):
    return sorted(tasks, key=lambda t: (t.createdAt, t.id))


class _CreationClock:
    _last_created: Optional[datetime] = None

    def _next_created(self):
        created = _now()
        # keep creation order stable for inserts within the same clock tick
        if self._last_created is not None and created <= self._last_created:
            created = self._last_created + timedelta(microseconds=1)
        self._last_created = created
        return created


class MemoryTaskStore(_CreationClock):
    def __init__(self):
        self._tasks: Dict[str, Task] = {}

    def list(self, owner_id, status=None):
        tasks = _by_creation(
            t for t in self._tasks.values()
            if t.ownerId == owner_id and (status is None or t.status == status)
        )
        return [t.model_copy() for t in tasks]

    def get(self, task_id):
        task = self._tasks.get(task_id)
        return None if task is None else task.model_copy()

    def insert(self, owner_id, text, status="pending", rescheduled_to=None):
        task = Task(
            id=str(uuid.uuid4()),
            text=text,
            status=status,
            rescheduledTo=rescheduled_to,
            createdAt=self._next_created(),
            ownerId=owner_id,
        )
        self._tasks[task.id] = task
        return task.model_copy()

    def update(self, task_id, fields):
        task = self._tasks.get(task_id)
        if task is None:
            return None
        updated = _merge(task, fields)
        self._tasks[task_id] = updated
        return updated.model_copy()

    def delete(self, task_ids):
        removed = 0
        for task_id in task_ids:
            if self._tasks.pop(task_id, None) is not None:
                removed += 1
        return removed


class RedisTaskStore(_CreationClock):
    """Tasks as JSON under ``task:{id}`` plus a per-owner id set."""

    def __init__(self, client):
        self.r = client

    @staticmethod
    def task_key(task_id):
        return f"task:{task_id}"

    @staticmethod
    def index_key(owner_id):
        return f"user:{{{owner_id}}}:tasks"

    def _save(self, task: Task):
        self.r.set(self.task_key(task.id), task.model_dump_json())

    def list(self, owner_id, status=None):
        ids = sorted(self.r.smembers(self.index_key(owner_id)))
        if not ids:
            return []
        raw = self.r.mget([self.task_key(task_id) for task_id in ids])
        tasks = []
        for task_id, item in zip(ids, raw):
            if item is None:
                logger.warning("Index for %s points at missing task %s", owner_id, task_id)
                continue
            task = Task.model_validate_json(item)
            if status is None or task.status == status:
                tasks.append(task)
        return _by_creation(tasks)

    def get(self, task_id):
        raw = self.r.get(self.task_key(task_id))
        if raw is None:
            return None
        return Task.model_validate_json(raw)

    def insert(self, owner_id, text, status="pending", rescheduled_to=None):
        task = Task(
            id=str(uuid.uuid4()),
            text=text,
            status=status,
            rescheduledTo=rescheduled_to,
            createdAt=self._next_created(),
            ownerId=owner_id,
        )
        with self.r.pipeline(transaction=True) as p:
            p.set(self.task_key(task.id), task.model_dump_json())
            p.sadd(self.index_key(owner_id), task.id)
            p.execute()
        return task

    def update(self, task_id, fields):
        task = self.get(task_id)
        if task is None:
            return None
        updated = _merge(task, fields)
        self._save(updated)
        return updated

    def delete(self, task_ids):
        keys = [self.task_key(task_id) for task_id in task_ids]
        if not keys:
            return 0
        removed = 0
        raw = self.r.mget(keys)
        with self.r.pipeline(transaction=True) as p:
            for key, item in zip(keys, raw):
                if item is None:
                    continue
                answer = json.loads(item)
                p.delete(key)
                p.srem(self.index_key(answer["ownerId"]), answer["id"])
                removed += 1
            p.execute()
        return removed


def create_store(backend=None):
    backend = backend or config.STORE_BACKEND
    if backend == "memory":
        return MemoryTaskStore()
    if backend == "redis":
        client = redis.Redis(host=config.REDIS_HOST, port=config.REDIS_PORT, decode_responses=True)
        return RedisTaskStore(client)
    raise ValueError(f"Unknown store backend: {backend}")
