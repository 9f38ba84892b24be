import logging
import os
from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional

import httpx
import redis
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import FileResponse, JSONResponse

from bullet_journal import config, service
from bullet_journal.auth import create_auth_client
from bullet_journal.errors import AuthError, InvalidTransition, TaskNotFound, TaskValidationError
from bullet_journal.logging_setup import setup_logging
from bullet_journal.models import Credentials, Group, PasswordUpdate, ResetRequest, Session, Task, TaskCreate, TaskUpdate
from bullet_journal.store import create_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    yield


app = FastAPI(title="Bullet Journal", lifespan=lifespan)

_store = None
_auth = None


def get_store():
    global _store
    if _store is None:
        _store = create_store()
    return _store


def get_auth():
    global _auth
    if _auth is None:
        _auth = create_auth_client()
    return _auth


def bearer_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


def current_owner(token: Optional[str] = Depends(bearer_token), auth=Depends(get_auth)) -> str:
    if auth is None:
        return config.LOCAL_OWNER
    if token is None:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return auth.get_user(token)


def require_auth(auth=Depends(get_auth)):
    if auth is None:
        raise HTTPException(status_code=503, detail="Authentication is not configured")
    return auth


@app.exception_handler(TaskValidationError)
async def validation_error(request: Request, exc: TaskValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(TaskNotFound)
async def not_found(request: Request, exc: TaskNotFound):
    return JSONResponse(status_code=404, content={"detail": "Task not found"})


@app.exception_handler(InvalidTransition)
async def invalid_transition(request: Request, exc: InvalidTransition):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(AuthError)
async def auth_error(request: Request, exc: AuthError):
    logger.info("Auth provider rejected %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(redis.RedisError)
async def storage_error(request: Request, exc: redis.RedisError):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": "Storage is unavailable"})


@app.exception_handler(httpx.HTTPError)
async def provider_error(request: Request, exc: httpx.HTTPError):
    logger.error("Auth provider unreachable on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": "Authentication service is unavailable"})


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/api/tasks", response_model=List[Task])
def list_tasks(owner: str = Depends(current_owner), store=Depends(get_store)):
    return store.list(owner)


@app.post("/api/tasks", status_code=201, response_model=Task)
def create_task(task: TaskCreate, owner: str = Depends(current_owner), store=Depends(get_store)):
    if not task.text or not task.text.strip():
        raise HTTPException(status_code=400, detail="Task text is required")
    return service.add_task(store, owner, task.text, reference_date=task.date)


@app.get("/api/tasks/history", response_model=List[Task])
def task_history(owner: str = Depends(current_owner), store=Depends(get_store)):
    return service.completed_history(store, owner)


@app.put("/api/tasks/{task_id}", response_model=Task)
def update_task(task_id: str, updates: TaskUpdate, owner: str = Depends(current_owner), store=Depends(get_store)):
    return service.update_task(store, owner, task_id, status=updates.status, rescheduled_to=updates.rescheduledTo)


@app.post("/api/tasks/{task_id}/undo", response_model=Task)
def undo_task(task_id: str, owner: str = Depends(current_owner), store=Depends(get_store)):
    return service.undo_task(store, owner, task_id)


@app.get("/api/board", response_model=List[Group])
def board(
    reference_date: Optional[date] = Query(default=None, alias="date"),
    owner: str = Depends(current_owner),
    store=Depends(get_store),
):
    return [Group(key=key, tasks=tasks) for key, tasks in service.board(store, owner, reference_date)]


@app.post("/api/auth/login", response_model=Session)
def login(credentials: Credentials, auth=Depends(require_auth)):
    return auth.sign_in(credentials.email, credentials.password)


@app.post("/api/auth/signup", status_code=202)
def signup(credentials: Credentials, auth=Depends(require_auth)):
    auth.sign_up(credentials.email, credentials.password)
    return {"message": "Confirmation email sent"}


@app.post("/api/auth/reset-password", status_code=202)
def reset_password(body: ResetRequest, auth=Depends(require_auth)):
    auth.reset_password(body.email, body.redirectTo)
    return {"message": "Password reset email sent"}


@app.put("/api/auth/password")
def update_password(body: PasswordUpdate, token: Optional[str] = Depends(bearer_token), auth=Depends(require_auth)):
    if token is None:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    auth.update_password(token, body.password)
    return {"message": "Password updated"}


@app.get("/{full_path:path}", include_in_schema=False)
def client_app(full_path: str):
    if full_path == "api" or full_path.startswith("api/"):
        raise HTTPException(status_code=404, detail="Not Found")
    public = os.path.realpath(config.PUBLIC_DIR)
    candidate = os.path.realpath(os.path.join(public, full_path))
    if full_path and candidate.startswith(public + os.sep) and os.path.isfile(candidate):
        return FileResponse(candidate)
    index = os.path.join(public, "index.html")
    if not os.path.isfile(index):
        raise HTTPException(status_code=404, detail="Client application is not built")
    logger.debug("Serving index.html for path: /%s", full_path)
    return FileResponse(index)


def run():
    import uvicorn

    setup_logging()
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", 3001)))
