from datetime import datetime

import pytest

from daylog.api import create_app
from daylog.catalog import PartitionCatalog
from daylog.config import Config
from daylog.retention import RetentionEngine
from daylog.writer import PartitionWriter

FIXED_NOW = datetime(2025, 1, 15, 14, 30, 5)
TODAY = "2025-01-15"


def fixed_clock():
    return FIXED_NOW


@pytest.fixture
def logs_dir(tmp_path):
    path = tmp_path / "logs"
    path.mkdir()
    return path


@pytest.fixture
def touch(logs_dir):
    """Create a file in the logs dir with optional content."""
    def _touch(name, content=""):
        path = logs_dir / name
        path.write_text(content, encoding="utf-8")
        return path
    return _touch


@pytest.fixture
def writer(logs_dir):
    return PartitionWriter(str(logs_dir), time_func=fixed_clock)


@pytest.fixture
def catalog(logs_dir, writer):
    return PartitionCatalog(str(logs_dir), writer=writer)


@pytest.fixture
def engine(catalog, writer):
    return RetentionEngine(catalog, writer)


@pytest.fixture
def config(logs_dir):
    cfg = Config(environ={})
    cfg.set("storage", "logs_dir", str(logs_dir))
    return cfg


@pytest.fixture
def app(config):
    """Create a Flask test app on a fixed clock."""
    application = create_app(config, time_func=fixed_clock)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    """Create a Flask test client."""
    return app.test_client()
