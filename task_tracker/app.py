import logging
from contextlib import asynccontextmanager
from typing import Annotated, AsyncIterator, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Path, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings
from .models import Health, InputTask, OutputTask, SortField, TaskPatch
from .store import InvalidTaskError, TaskNotFoundError, TaskStore
from .utils import setup_logging, utc_timestamp

logger = logging.getLogger(__name__)

router = APIRouter()


def get_store(request: Request) -> TaskStore:
    return request.app.state.store


@router.get("/_health", status_code=200)
def health() -> Health:
    return Health(ok=True, time=utc_timestamp())


@router.get("/tasks", status_code=200)
def get_tasks(
    status: Optional[str] = None,
    title_like: Optional[str] = None,
    sort: Annotated[SortField, Query(alias="_sort")] = SortField.CREATED_AT,
    order: Annotated[str, Query(alias="_order")] = "desc",
    store: TaskStore = Depends(get_store),
) -> list[OutputTask]:
    try:
        return store.list_tasks(status=status, title_like=title_like, sort=sort, order=order)
    except SQLAlchemyError:
        logger.exception("Failed to fetch tasks")
        raise HTTPException(status_code=500, detail="Failed to fetch tasks")


@router.post("/tasks", status_code=201)
def create_task(task: InputTask, store: TaskStore = Depends(get_store)) -> OutputTask:
    try:
        return store.create_task(task.title, task.description)
    except InvalidTaskError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError:
        logger.exception("Failed to create task")
        raise HTTPException(status_code=500, detail="Failed to create task")


@router.patch("/tasks/{task_id}", status_code=200)
def update_task(
    task_id: Annotated[int, Path(gt=0)],
    patch: TaskPatch,
    store: TaskStore = Depends(get_store),
) -> OutputTask:
    try:
        return store.update_task(task_id, patch.recognized_fields())
    except InvalidTaskError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="Task not found")
    except SQLAlchemyError:
        logger.exception("Failed to update task id=%s", task_id)
        raise HTTPException(status_code=500, detail="Failed to update task")


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        setup_logging(settings.log_level)
        store = TaskStore.from_settings(settings)
        store.initialize()
        app.state.store = store
        try:
            yield
        finally:
            store.close()

    app = FastAPI(title="Task Tracker", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(router)
    return app


app = create_app()


def main() -> None:
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    logger.info("Task tracker listening on %s:%s db=%s", settings.host, settings.port, settings.db_path)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
