import pytest

from task_tracker.client import TaskApiError, TaskClient, count_by_status


@pytest.fixture
def api(client):
    return TaskClient("http://testserver", session=client)


def test_create_and_fetch(api):
    created = api.create_task(" Buy milk ", "2 litres")
    assert created["title"] == "Buy milk"
    assert created["status"] == "Pending"
    assert api.fetch_tasks() == [created]


def test_fetch_with_filters(api):
    api.create_task("Read book")
    api.create_task("Write book")
    api.complete_task(1)

    assert [t["title"] for t in api.fetch_tasks(status="Completed")] == ["Read book"]
    assert [t["title"] for t in api.fetch_tasks(title_like="WRITE", status="")] == ["Write book"]
    assert [t["id"] for t in api.fetch_tasks(_sort="id", _order="asc")] == [1, 2]


def test_update_task(api):
    api.create_task("Draft")
    updated = api.update_task(1, {"title": "Final"})
    assert updated["title"] == "Final"


def test_errors_carry_status(api):
    with pytest.raises(TaskApiError) as excinfo:
        api.update_task(42, {"status": "Completed"})
    assert excinfo.value.status_code == 404
    assert str(excinfo.value) == "Update task failed: 404"

    with pytest.raises(TaskApiError) as excinfo:
        api.create_task("   ")
    assert excinfo.value.status_code == 400


def test_health(api):
    assert api.health()["ok"] is True


def test_count_by_status():
    tasks = [{"status": "Pending"}, {"status": "Completed"}, {"status": "Pending"}, {"status": "Blocked"}]
    assert count_by_status(tasks) == {"Pending": 2, "Completed": 1}
    assert count_by_status([]) == {"Pending": 0, "Completed": 0}


def test_base_url_from_environment(monkeypatch):
    monkeypatch.setenv("TASKS_API_URL", "http://api.test:9000/")
    assert TaskClient().base_url == "http://api.test:9000"
    monkeypatch.delenv("TASKS_API_URL")
    assert TaskClient().base_url == "http://localhost:3000"
    assert TaskClient("http://explicit.test").base_url == "http://explicit.test"
