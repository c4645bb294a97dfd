import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Optional

from sqlalchemy import ColumnElement, create_engine, func, select
from sqlalchemy.orm import sessionmaker

from .config import Settings
from .models import OutputTask, SortField, TaskDB, TaskField, TaskStatus
from .utils import clean_text

logger = logging.getLogger(__name__)

# SQLite INTEGER PRIMARY KEY is a signed 64-bit value.
MAX_ROW_ID = 2**63 - 1

_SORT_COLUMNS = {
    SortField.ID: TaskDB.id,
    SortField.TITLE: TaskDB.title,
    SortField.DESCRIPTION: TaskDB.description,
    SortField.STATUS: TaskDB.status,
    SortField.CREATED_AT: TaskDB.created_at,
}


class InvalidTaskError(ValueError):
    """Malformed or missing input; maps to a client error."""


class TaskNotFoundError(LookupError):
    def __init__(self, task_id: int) -> None:
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class TaskStore:
    """SQLite-backed task storage.

    Every operation runs in its own short-lived session. Column names used in
    filters, ORDER BY and SET clauses come only from the fixed enumerations in
    ``models``; request values are always bound parameters.
    """

    def __init__(self, db_path: str | Path, init_sql: str | Path, strict_status: bool = False) -> None:
        self._db_path = Path(db_path)
        self._init_sql = Path(init_sql)
        self._strict_status = strict_status
        self._engine = create_engine(f"sqlite:///{self._db_path}", connect_args={"check_same_thread": False})
        self._sessions = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
        self._setters: dict[TaskField, Callable[[TaskDB, str], None]] = {
            TaskField.STATUS: self._set_status,
            TaskField.TITLE: self._set_title,
            TaskField.DESCRIPTION: self._set_description,
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "TaskStore":
        return cls(settings.db_path, settings.init_sql, strict_status=settings.strict_status)

    def initialize(self) -> None:
        """Run the schema script. Safe to call on an existing database."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        script = self._init_sql.read_text(encoding="utf-8")
        raw = self._engine.raw_connection()
        try:
            raw.driver_connection.executescript(script)
        finally:
            raw.close()
        logger.info("Task store ready db=%s", self._db_path)

    def close(self) -> None:
        self._engine.dispose()

    # ---- queries ----

    @staticmethod
    def _build_filters(status: Optional[str], title_like: Optional[str]) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = []
        if status:
            conditions.append(TaskDB.status == status)
        if title_like:
            conditions.append(func.lower(TaskDB.title).contains(title_like.lower(), autoescape=True))
        return conditions

    def list_tasks(
        self,
        status: Optional[str] = None,
        title_like: Optional[str] = None,
        sort: SortField = SortField.CREATED_AT,
        order: str = "desc",
    ) -> list[OutputTask]:
        query = select(TaskDB)
        conditions = self._build_filters(status, title_like)
        if conditions:
            query = query.where(*conditions)

        column = _SORT_COLUMNS[SortField(sort)]
        if order.lower() == "asc":
            query = query.order_by(column.asc(), TaskDB.id.asc())
        else:
            query = query.order_by(column.desc(), TaskDB.id.desc())

        with self._sessions() as session:
            tasks = session.scalars(query).all()
            return [OutputTask.model_validate(task) for task in tasks]

    def get_task(self, task_id: int) -> Optional[OutputTask]:
        if task_id > MAX_ROW_ID:
            return None
        with self._sessions() as session:
            task = session.get(TaskDB, task_id)
            return OutputTask.model_validate(task) if task else None

    def create_task(self, title: Optional[str], description: Optional[str] = None) -> OutputTask:
        title = clean_text(title)
        if not title:
            raise InvalidTaskError("Title is required")

        with self._sessions() as session:
            new_task = TaskDB(title=title, description=clean_text(description), status=TaskStatus.PENDING.value)
            session.add(new_task)
            session.commit()
            session.refresh(new_task)
            logger.debug("Created task id=%s", new_task.id)
            return OutputTask.model_validate(new_task)

    def update_task(self, task_id: int, fields: Mapping[TaskField, str]) -> OutputTask:
        if task_id <= 0:
            raise InvalidTaskError("Invalid id")
        if not fields:
            raise InvalidTaskError("No valid fields to update")
        if task_id > MAX_ROW_ID:
            raise TaskNotFoundError(task_id)

        with self._sessions() as session:
            task = session.get(TaskDB, task_id)
            if task is None:
                raise TaskNotFoundError(task_id)

            for key, value in fields.items():
                self._setters[TaskField(key)](task, value)

            session.commit()
            session.refresh(task)
            logger.debug("Updated task id=%s fields=%s", task_id, [TaskField(k).value for k in fields])
            return OutputTask.model_validate(task)

    # ---- setters ----

    def _set_status(self, task: TaskDB, value: str) -> None:
        if self._strict_status and value not in {s.value for s in TaskStatus}:
            raise InvalidTaskError(f"Unknown status: {value}")
        task.status = value

    @staticmethod
    def _set_title(task: TaskDB, value: str) -> None:
        title = clean_text(value)
        if not title:
            raise InvalidTaskError("Title cannot be blank")
        task.title = title

    @staticmethod
    def _set_description(task: TaskDB, value: str) -> None:
        task.description = clean_text(value)
