# ~/capture3d/routes/router.py
import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, WebSocket

from capture3d.errors import (
    CameraAccessError,
    CaptureInProgressError,
    ClassifierInitError,
    NoQualifyingObjectError,
)
from capture3d.observers import EventBroadcaster
from capture3d.pipeline import CapturePipeline
from capture3d.reconstruction.model_mapper import get_model_for_object
from capture3d.schemas.detection import (
    CaptureStatus,
    ModelDescriptor,
    RenderPrimitive,
    SessionSnapshot,
    ShowcaseModel,
)
from capture3d.utils.primitives import primitive_for

logger = logging.getLogger(__name__)

router = APIRouter()


def get_pipeline(request: Request) -> CapturePipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Capture pipeline not available")
    return pipeline


@router.get("/api/status", response_model=SessionSnapshot)
async def get_status(pipeline: CapturePipeline = Depends(get_pipeline)):
    return pipeline.snapshot()


@router.post("/api/capture/start", response_model=SessionSnapshot)
async def start_capture(pipeline: CapturePipeline = Depends(get_pipeline)):
    if pipeline.camera is None:
        raise HTTPException(status_code=503, detail="Camera not available")
    try:
        pipeline.start_capture()
    except NoQualifyingObjectError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except CaptureInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return pipeline.snapshot()


@router.post("/api/capture/manual", response_model=SessionSnapshot)
async def manual_capture(pipeline: CapturePipeline = Depends(get_pipeline)):
    """Tap to capture the current side now"""
    if pipeline.scheduler.status != CaptureStatus.CAPTURING:
        raise HTTPException(status_code=409, detail="No capture in progress")
    pipeline.manual_capture()
    return pipeline.snapshot()


@router.post("/api/capture/abort", response_model=SessionSnapshot)
async def abort_capture(pipeline: CapturePipeline = Depends(get_pipeline)):
    if not pipeline.abort_capture():
        raise HTTPException(status_code=409, detail="No capture in progress")
    return pipeline.snapshot()


@router.get("/api/model", response_model=ModelDescriptor)
async def get_model(pipeline: CapturePipeline = Depends(get_pipeline)):
    if pipeline.scheduler.last_model is None:
        raise HTTPException(status_code=404, detail="No model has been created yet")
    return pipeline.scheduler.last_model


@router.get("/api/model/primitive", response_model=RenderPrimitive)
async def get_model_primitive(pipeline: CapturePipeline = Depends(get_pipeline)):
    if pipeline.scheduler.last_model is None:
        raise HTTPException(status_code=404, detail="No model has been created yet")
    return primitive_for(pipeline.scheduler.last_model)


@router.get("/api/showcase/{label}", response_model=ShowcaseModel)
async def get_showcase_model(label: str):
    return get_model_for_object(label)


@router.post("/api/control/start", response_model=SessionSnapshot)
async def start_stream(pipeline: CapturePipeline = Depends(get_pipeline)):
    try:
        await pipeline.start_camera()
        pipeline.set_enabled(True)
        if not pipeline.is_running:
            pipeline.start()
    except CameraAccessError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except ClassifierInitError as e:
        raise HTTPException(status_code=503, detail=str(e))
    logger.info("Stream started")
    return pipeline.snapshot()


@router.post("/api/control/stop", response_model=SessionSnapshot)
async def stop_stream(pipeline: CapturePipeline = Depends(get_pipeline)):
    await pipeline.stop_camera()
    logger.info("Stream stopped")
    return pipeline.snapshot()


@router.post("/api/control/detection", response_model=SessionSnapshot)
async def toggle_detection(enabled: bool, pipeline: CapturePipeline = Depends(get_pipeline)):
    pipeline.set_enabled(enabled)
    return pipeline.snapshot()


async def _forward_events(websocket: WebSocket, queue: asyncio.Queue):
    while True:
        event = await queue.get()
        await websocket.send_json(event)


@router.websocket("/ws/events")
async def websocket_events(websocket: WebSocket):
    broadcaster: EventBroadcaster = websocket.app.state.broadcaster
    queue = broadcaster.subscribe()
    sender = None
    try:
        await websocket.accept()
        sender = asyncio.create_task(_forward_events(websocket, queue))
        # Clients only listen; reading here notices a disconnect right away
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        broadcaster.unsubscribe(queue)
        if sender is not None:
            sender.cancel()
            try:
                await sender
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning(f"Event stream send failed: {str(e)}")
        logger.info("Client disconnected")
