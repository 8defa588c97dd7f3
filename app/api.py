"""HTTP and WebSocket route definitions for the service."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect, status
from fastapi.responses import JSONResponse

from app.schemas import AlertStatus, IngestResponse
from models.records import FailureKind
from services.pipeline import IngestPipeline, build_default_pipeline

logger = logging.getLogger(__name__)

router = APIRouter()

_FAILURE_STATUS = {
    FailureKind.validation: status.HTTP_400_BAD_REQUEST,
    FailureKind.internal: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_pipeline() -> IngestPipeline:
    return build_default_pipeline()


@router.post(
    "/api/data",
    response_model=IngestResponse,
    response_model_exclude_none=True,
    summary="Ingest a sensor reading.",
    responses={400: {"model": IngestResponse}, 500: {"model": IngestResponse}},
)
async def ingest_reading(
    request: Request,
    pipeline: IngestPipeline = Depends(get_pipeline),
) -> Any:
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    result = await pipeline.ingest(payload)
    body = IngestResponse(ok=result.ok, error=result.error)
    if result.failure is not None:
        return JSONResponse(
            status_code=_FAILURE_STATUS[result.failure],
            content=body.model_dump(exclude_none=True),
        )
    return body


@router.get(
    "/api/last",
    summary="Latest reading, or an empty object before the first ingest.",
)
async def get_last_reading(
    pipeline: IngestPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    latest = pipeline.latest()
    if latest is None:
        return {}
    return latest.to_payload()


@router.get(
    "/api/alert",
    response_model=AlertStatus,
    summary="Current alert controller state.",
)
async def get_alert_status(
    pipeline: IngestPipeline = Depends(get_pipeline),
) -> AlertStatus:
    return pipeline.alerts.snapshot()


@router.websocket("/ws")
async def sensor_stream(
    websocket: WebSocket,
    pipeline: IngestPipeline = Depends(get_pipeline),
) -> None:
    await websocket.accept()
    await pipeline.register_observer(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        pipeline.unregister_observer(websocket)
        logger.info(
            "Observer disconnected.",
            extra={"observer_count": pipeline.broadcaster.observer_count},
        )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
