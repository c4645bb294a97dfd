from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from task_tracker.app import create_app
from task_tracker.config import Settings
from task_tracker.models import TaskDB
from task_tracker.store import TaskStore


@pytest.fixture
def settings(tmp_path):
    return Settings(db_path=tmp_path / "tasks.sqlite")


@pytest.fixture
def client(settings):
    # Entering the context runs the lifespan, which initializes the schema.
    with TestClient(create_app(settings)) as client:
        yield client


@pytest.fixture
def store(settings):
    store = TaskStore.from_settings(settings)
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def setup(client, settings):
    engine = create_engine(f"sqlite:///{settings.db_path}")
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = TestingSessionLocal()
    db.add(
        TaskDB(
            id=1,
            title="Sample Task 1",
            description="first",
            status="Pending",
            created_at=datetime(2024, 1, 1, 10, 0, 0),
        )
    )
    db.add(
        TaskDB(
            id=2,
            title="Buy MILK",
            description="",
            status="Completed",
            created_at=datetime(2024, 1, 2, 10, 0, 0),
        )
    )
    db.add(
        TaskDB(
            id=3,
            title="Write report",
            description="quarterly",
            status="Pending",
            created_at=datetime(2024, 1, 3, 10, 0, 0),
        )
    )
    db.commit()
    db.close()
    engine.dispose()

    yield
