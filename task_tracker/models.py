from datetime import datetime
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

Base = declarative_base()


class TaskStatus(str, Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"


class TaskField(str, Enum):
    """Fields a partial update is allowed to touch."""

    STATUS = "status"
    TITLE = "title"
    DESCRIPTION = "description"


class SortField(str, Enum):
    ID = "id"
    TITLE = "title"
    DESCRIPTION = "description"
    STATUS = "status"
    CREATED_AT = "created_at"


# ---------- Database Models ----------
class TaskDB(Base):
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False, server_default="")
    status: Mapped[str] = mapped_column(String, nullable=False, server_default=TaskStatus.PENDING.value)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, server_default=func.current_timestamp())

    def __repr__(self) -> str:
        return f"Task(id: {self.id}, title: '{self.title}', status: '{self.status}')"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "created_at": self.created_at,
        }


# ---------- Data Models ----------
class InputTask(BaseModel):
    # Unknown keys (e.g. a client-supplied status) are dropped, never stored.
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    title: Optional[str] = None
    description: Optional[str] = None


class TaskPatch(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    status: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None

    def recognized_fields(self) -> dict[TaskField, str]:
        """Supplied, non-null fields keyed by their TaskField."""
        return {
            TaskField(name): getattr(self, name)
            for name in sorted(self.model_fields_set)
            if getattr(self, name) is not None
        }


class OutputTask(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Annotated[int, Field(gt=0)]
    title: str
    description: str
    status: str
    created_at: datetime


class Health(BaseModel):
    ok: bool
    time: str
