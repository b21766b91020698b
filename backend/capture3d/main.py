# ~/capture3d/main.py
import logging

from fastapi import FastAPI

from capture3d.config import get_settings
from capture3d.errors import CameraAccessError, ClassifierInitError
from capture3d.network.lan_output import LANOutput
from capture3d.network.osc_output import OSCOutput
from capture3d.network.presenter import NetworkPresenter
from capture3d.observers import EventBroadcaster, ObserverGroup
from capture3d.pipeline import CapturePipeline
from capture3d.routes.router import router

settings = get_settings()

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Object Capture API",
    description="Guided six-sided object capture with 3D model synthesis",
    version="1.0.0"
)
app.include_router(router)


@app.on_event("startup")
async def startup():
    broadcaster = EventBroadcaster()
    observers = ObserverGroup([broadcaster])

    lan = None
    osc = None
    if settings.lan_enabled:
        lan = LANOutput(
            host=settings.lan_host,
            port=settings.lan_port,
            protocol=settings.lan_protocol,
            debug=settings.output_debug,
        )
    if settings.osc_enabled:
        osc = OSCOutput(ip=settings.osc_ip, port=settings.osc_port, debug=settings.output_debug)
    presenter = NetworkPresenter(lan=lan, osc=osc)
    observers.add(presenter)

    pipeline = CapturePipeline(settings, observers=observers)
    app.state.broadcaster = broadcaster
    app.state.presenter = presenter
    app.state.pipeline = pipeline

    # Neither failure is fatal: the error is kept on the pipeline and
    # reported through /api/status
    try:
        await pipeline.load_detector()
    except ClassifierInitError as e:
        logger.error(f"Detection disabled: {str(e)}")
        return

    try:
        await pipeline.start_camera()
    except CameraAccessError as e:
        logger.error(f"Camera unavailable: {str(e)}")

    pipeline.start()
    logger.info("Application startup complete")


@app.on_event("shutdown")
async def shutdown():
    pipeline = getattr(app.state, "pipeline", None)
    if pipeline:
        await pipeline.stop()

    presenter = getattr(app.state, "presenter", None)
    if presenter:
        presenter.close()

    logger.info("Application shutdown")


def run():
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port, loop="uvloop", log_config=None)


if __name__ == "__main__":
    run()
