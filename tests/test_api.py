from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from filedrop.api import app
from filedrop.config import Settings, get_settings


@pytest.fixture()
def client(storage_root: Path) -> Iterator[TestClient]:
    app.dependency_overrides[get_settings] = lambda: Settings(storage_root=storage_root)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_healthcheck(client: TestClient) -> None:
    assert client.get("/healthz").json() == {"status": "ok"}


def test_upload_list_and_download_plain_file(client: TestClient) -> None:
    response = client.post("/upload", files=[("files", ("docs/readme.txt", b"hello", "text/plain"))])
    assert response.status_code == 200
    assert response.json() == {"ok": True, "files": 1}

    listing = client.get("/files").json()
    assert listing["ok"] is True
    assert listing["files"] == [
        {"path": "docs/readme.txt", "url": "http://testserver/uploads/docs/readme.txt"},
    ]

    download = client.get("/download", params={"path": "docs/readme.txt"})
    assert download.status_code == 200
    assert download.content == b"hello"
    assert "attachment" in download.headers["content-disposition"]


def test_listing_percent_encodes_urls(client: TestClient) -> None:
    client.post("/upload", files=[("files", ("my docs/a b.txt", b"x", "text/plain"))])

    entry = client.get("/files").json()["files"][0]

    assert entry["path"] == "my docs/a b.txt"
    assert entry["url"].endswith("/uploads/my%20docs/a%20b.txt")


def test_empty_upload_is_rejected(client: TestClient) -> None:
    response = client.post("/upload", data={"note": "no files"})

    assert response.status_code == 400
    assert response.json()["kind"] == "NoItems"


def test_upload_archive_then_download_directory(client: TestClient, make_zip) -> None:
    payload = make_zip({"a.txt": b"A", "sub/b.txt": b"B"})
    response = client.post("/upload", files=[("upload", ("bundle.zip", payload, "application/zip"))])
    assert response.json() == {"ok": True, "files": 1}

    paths = sorted(entry["path"] for entry in client.get("/files").json()["files"])
    assert paths == ["bundle/a.txt", "bundle/sub/b.txt"]

    download = client.get("/download", params={"path": "bundle"})
    assert download.status_code == 200
    assert download.headers["content-type"] == "application/zip"
    assert download.headers["content-disposition"] == 'attachment; filename="bundle.zip"'
    with zipfile.ZipFile(io.BytesIO(download.content)) as archive:
        files = {name: archive.read(name) for name in archive.namelist() if not name.endswith("/")}
    assert files == {"bundle/a.txt": b"A", "bundle/sub/b.txt": b"B"}


def test_corrupt_archive_reports_extraction_failure(client: TestClient, storage_root: Path) -> None:
    response = client.post("/upload", files=[("files", ("broken.zip", b"garbage", "application/zip"))])

    assert response.status_code == 500
    body = response.json()
    assert body["ok"] is False
    assert body["kind"] == "ExtractionFailed"
    assert body["error"] == "Failed to extract zip file"
    assert list(storage_root.iterdir()) == []


def test_upload_traversal_is_rejected(client: TestClient, storage_root: Path) -> None:
    response = client.post("/upload", files=[("files", ("../../evil.txt", b"x", "text/plain"))])

    assert response.status_code == 400
    assert response.json()["kind"] == "PathTraversal"
    assert not (storage_root.parent / "evil.txt").exists()


def test_download_traversal_is_rejected(client: TestClient) -> None:
    response = client.get("/download", params={"path": "../../etc/passwd"})

    assert response.status_code == 400
    assert response.json()["kind"] == "PathTraversal"


def test_download_missing_path_and_missing_file(client: TestClient) -> None:
    assert client.get("/download").status_code == 400
    response = client.get("/download", params={"path": "ghost.txt"})
    assert response.status_code == 404
    assert response.json()["kind"] == "NotFound"


def test_static_retrieval(client: TestClient) -> None:
    client.post("/upload", files=[("files", ("img/logo.txt", b"logo", "text/plain"))])

    assert client.get("/uploads/img/logo.txt").content == b"logo"
    assert client.get("/uploads/img").status_code == 404
    assert client.get("/uploads/missing.txt").status_code == 404
