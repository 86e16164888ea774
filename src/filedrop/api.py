"""FastAPI application exposing upload, listing and download endpoints."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

from fastapi import Depends, FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, JSONResponse, StreamingResponse
from pydantic import BaseModel, Field
from starlette.datastructures import UploadFile

from .config import Settings, get_settings
from .errors import NotFound, StorageError
from .storage.files import FileStorage
from .storage.models import DirectoryDownload, UploadItem
from .transfers.downloads import DownloadResolver
from .transfers.uploads import UploadCoordinator

logger = logging.getLogger(__name__)

app = FastAPI(title="Filedrop", version="0.1.0")


class UploadResponse(BaseModel):
    ok: bool = True
    files: int


class FileEntry(BaseModel):
    path: str
    url: str


class FileListResponse(BaseModel):
    ok: bool = True
    files: list[FileEntry] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
    kind: str | None = None
    details: str | None = None


async def get_file_storage(settings: Settings = Depends(get_settings)) -> FileStorage:
    return FileStorage(settings.storage_config)


async def get_coordinator(storage: FileStorage = Depends(get_file_storage)) -> UploadCoordinator:
    return UploadCoordinator(storage)


async def get_resolver(storage: FileStorage = Depends(get_file_storage)) -> DownloadResolver:
    return DownloadResolver(storage)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.warning("%s %s failed: %s (%s)", request.method, request.url.path, exc.kind, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def _attachment(filename: str) -> str:
    quoted = quote(filename)
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'


@app.get("/healthz")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@app.post(
    "/upload",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def upload_files(request: Request, coordinator: UploadCoordinator = Depends(get_coordinator)):
    # Every multipart file part is accepted, whatever its field name.
    form = await request.form()
    items = [
        UploadItem(name=value.filename or "", payload=await value.read())
        for _, value in form.multi_items()
        if isinstance(value, UploadFile)
    ]
    try:
        result = await run_in_threadpool(coordinator.handle, items)
    except StorageError:
        raise
    except Exception as exc:
        logger.exception("Upload failed")
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Upload failed", details=str(exc)).model_dump(),
        )
    return UploadResponse(files=result.accepted)


@app.get("/files", response_model=FileListResponse)
async def list_files(
    request: Request,
    storage: FileStorage = Depends(get_file_storage),
    settings: Settings = Depends(get_settings),
):
    try:
        paths = await run_in_threadpool(storage.list_files)
    except OSError:
        logger.exception("Listing %s failed", storage.base_dir)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Failed to list files").model_dump(),
        )
    base_url = f"{request.url.scheme}://{request.headers.get('host', request.url.netloc)}"
    entries = [
        FileEntry(path=path, url=f"{base_url}{settings.public_prefix}/{quote(path)}") for path in paths
    ]
    return FileListResponse(files=entries)


@app.get("/download", responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}})
async def download(
    path: Optional[str] = Query(default=None, description="Path relative to the storage root."),
    resolver: DownloadResolver = Depends(get_resolver),
):
    if not path:
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="Missing path query").model_dump(),
        )
    target = await run_in_threadpool(resolver.resolve, path)
    if isinstance(target, DirectoryDownload):
        return StreamingResponse(
            target.stream,
            media_type="application/zip",
            headers={"Content-Disposition": _attachment(target.filename)},
        )
    return FileResponse(target.path, filename=target.filename)


async def serve_stored_file(file_path: str, resolver: DownloadResolver = Depends(get_resolver)):
    target = await run_in_threadpool(resolver.resolve, file_path)
    if isinstance(target, DirectoryDownload):
        raise NotFound(f"{file_path!r} is a directory.")
    return FileResponse(target.path)


app.add_api_route(
    get_settings().public_prefix + "/{file_path:path}",
    serve_stored_file,
    methods=["GET"],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
