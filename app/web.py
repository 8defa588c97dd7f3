from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from app.schemas import SENSOR_DATA_EVENT
from services.pipeline import IngestPipeline, build_default_pipeline


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


def get_pipeline() -> IngestPipeline:
    return build_default_pipeline()


router = APIRouter(include_in_schema=False)


@router.get("/ui", name="ui_index", response_class=HTMLResponse)
async def ui_index(
    request: Request,
    pipeline: IngestPipeline = Depends(get_pipeline),
) -> HTMLResponse:
    latest = pipeline.latest()
    return templates.TemplateResponse(
        request,
        "ui/index.html",
        {
            "reading": latest.to_payload() if latest is not None else None,
            "alert": pipeline.alerts.snapshot(),
            "event_name": SENSOR_DATA_EVENT,
        },
    )
