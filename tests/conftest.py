import pytest

from tasklog.app import create_app
from tasklog.config import Config
from tasklog.locking import FileLockManager, ThreadLockManager
from tasklog.service import LogService
from tasklog.store import LogFileStore


@pytest.fixture
def sample_entry():
    return {
        "timestamp": "2024-03-04T09:15:00.000Z",
        "project": "Website",
        "sprint": "Sprint 3",
        "task": "Landing page",
        "elementType": "element",
        "status": "completed",
        "duration": "02:30",
        "elementDurationSeconds": 150,
        "elementCountInTask": 2,
        "taskTotalSeconds": 300,
        "sprintTotalSeconds": 1200,
        "projectTotalSeconds": 5400,
        "taskStarted": "2024-03-04T09:10:00.000Z",
        "sprintStarted": "2024-03-01T08:00:00.000Z",
        "projectStarted": "2024-02-01T08:00:00.000Z",
        "projectDescription": "Company site relaunch",
    }


@pytest.fixture
def log_path(tmp_path):
    return str(tmp_path / "log.json")


@pytest.fixture
def store(log_path):
    s = LogFileStore(log_path)
    s.initialize()
    return s


@pytest.fixture
def service(store):
    return LogService(store, ThreadLockManager(retry_wait=0.05, max_wait=0.5))


@pytest.fixture
def file_locked_service(store):
    return LogService(store, FileLockManager(retry_wait=0.05, max_wait=1.0), max_retries=10)


@pytest.fixture
def config(tmp_path, log_path):
    public = tmp_path / "public"
    public.mkdir()
    (public / "index.html").write_text("<h1>Task Log</h1>", encoding="utf-8")
    return Config(
        log_file=log_path,
        public_dir=str(public),
        lock_backend="thread",
        lock_retry_wait_seconds=0.05,
        lock_retry_max_wait_seconds=0.5,
    )


@pytest.fixture
def app(config):
    application = create_app(config)
    application.config["TESTING"] = True
    application.config["components"]["service"].initialize()
    return application


@pytest.fixture
def client(app):
    return app.test_client()
