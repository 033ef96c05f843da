import importlib
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Reload order matters: later modules bind names from earlier ones at import.
MODULE_ORDER = [
    "docshare.config",
    "docshare.db",
    "docshare.storage",
    "docshare.services.stats",
    "docshare.services.records",
    "docshare.services.quota",
    "docshare.services.files",
    "docshare.api.routes",
    "docshare.main",
]


def _prepare_client(tmp_path, monkeypatch):
    project_root = Path(__file__).resolve().parents[1]
    project_root_str = str(project_root)
    if project_root_str not in sys.path:
        sys.path.insert(0, project_root_str)

    db_path = tmp_path / "test.db"
    blob_dir = tmp_path / "blobs"
    monkeypatch.setenv("BLOB_DIR", str(blob_dir))
    monkeypatch.setenv("DB_URL", f"sqlite:///{db_path}")
    monkeypatch.setenv("CORS_ORIGINS", "*")
    monkeypatch.setenv("BLOB_CHUNK_SIZE", "1024")

    # Reload modules so configuration changes take effect cleanly.
    for module_name in MODULE_ORDER:
        module = importlib.import_module(module_name)
        importlib.reload(module)

    main = sys.modules["docshare.main"]

    test_client = TestClient(main.app)
    test_client.blob_dir = blob_dir  # type: ignore[attr-defined]
    return test_client


@pytest.fixture
def client(tmp_path, monkeypatch):
    test_client = _prepare_client(tmp_path, monkeypatch)
    with test_client as c:
        yield c
    c.app.dependency_overrides.clear()


@pytest.fixture
def blob_store(client):
    storage = sys.modules["docshare.storage"]
    return storage.LocalBlobStore(client.blob_dir)


def session_scope():
    return sys.modules["docshare.db"].session_scope()


def stored_objects(blob_dir: Path) -> list[Path]:
    """Every blob object under ``blob_dir``, metadata files excluded."""
    objects_dir = blob_dir / "objects"
    if not objects_dir.exists():
        return []
    return sorted(p for p in objects_dir.rglob("*") if p.is_file())
