"""Arena source routes: version listing/switching and resolved content.

Handlers are plain ``def`` so FastAPI runs the blocking filesystem and HTTP
work in its threadpool.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Request

from arenacontent.core.service import ContentService

router = APIRouter(prefix="/api/workspaces/{name}/arena/sources/{source_name}", tags=["arena-sources"])


def get_service(request: Request) -> ContentService:
    """The ContentService bound to the running app."""
    return request.app.state.service


@router.get("/versions")
def list_versions(name: str, source_name: str, service: ContentService = Depends(get_service)):
    return service.get_versions(name, source_name).as_dict()


@router.post("/versions")
def switch_version(
    name: str,
    source_name: str,
    payload: Any = Body(default=None),
    service: ContentService = Depends(get_service),
):
    version = payload.get("version") if isinstance(payload, dict) else None
    return service.switch_version(name, source_name, version).as_dict()


@router.get("/content")
def get_content(name: str, source_name: str, service: ContentService = Depends(get_service)):
    return service.get_content(name, source_name).as_dict()


@router.get("/content/file")
def get_file(
    name: str,
    source_name: str,
    path: Optional[str] = Query(default=None, description="Path relative to the content root"),
    service: ContentService = Depends(get_service),
):
    return service.get_file(name, source_name, path).as_dict()
