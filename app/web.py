from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from models.records import HistoryWindow, LatestSnapshot
from services.errors import StoreUnavailableError
from services.query import QueryService, build_default_query_service
from services.rollup import SystemStatusSnapshot

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

REFRESH_SECONDS = 30


def get_query_service() -> QueryService:
    return build_default_query_service()


router = APIRouter(include_in_schema=False)


@router.get("/", name="dashboard", response_class=HTMLResponse)
def dashboard(
    request: Request,
    location: Optional[str] = None,
    service: QueryService = Depends(get_query_service),
) -> HTMLResponse:
    selected = location if location in service.locations else service.locations[0]
    snapshot: Optional[LatestSnapshot] = None
    summary: Optional[SystemStatusSnapshot] = None
    history: Optional[HistoryWindow] = None
    unavailable = False

    try:
        snapshot, summary = service.get_overall_status()
    except StoreUnavailableError:
        logger.warning("Dashboard rendered without latest data")
        unavailable = True

    try:
        history = service.get_history(selected)
    except StoreUnavailableError:
        logger.warning("Dashboard rendered without history", extra={"location": selected})
        unavailable = True

    return templates.TemplateResponse(
        request,
        "dashboard/index.html",
        {
            "request": request,
            "locations": service.locations,
            "selected": selected,
            "snapshot": snapshot,
            "summary": summary,
            "history": history,
            "unavailable": unavailable,
            "refresh_seconds": REFRESH_SECONDS,
        },
    )
