from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging
from logging.handlers import RotatingFileHandler

from notepin.deps import get_event_tracker, get_job_queue, get_settings
from notepin.models.base import init_db
from notepin.api.events import router as events_router
from notepin.api.notes import router as notes_router
from notepin.api.recordings import router as recordings_router
from notepin.api.shares import router as shares_router


def configure_logging() -> None:
    settings = get_settings()
    log_file = settings.logs_dir / "backend.log"
    root = logging.getLogger()
    if not any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        handler = RotatingFileHandler(str(log_file), maxBytes=5_000_000, backupCount=2)
        handler.setFormatter(logging.Formatter(fmt="%(asctime)s %(levelname)s %(name)s %(message)s"))
        root.addHandler(handler)
    root.setLevel(logging.INFO)


def create_app() -> FastAPI:
    app = FastAPI(title="NotePin Backend", version="0.1.0")

    @app.on_event("startup")
    def _startup() -> None:
        settings = get_settings()
        settings.ensure_dirs()
        try:
            configure_logging()
        except OSError:
            logging.getLogger("notepin").warning("File logging unavailable, using default handlers")
        init_db()
        get_event_tracker().start()
        get_job_queue().start()

    @app.on_event("shutdown")
    def _shutdown() -> None:
        get_job_queue().shutdown(wait=True)
        get_event_tracker().close()

    @app.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(recordings_router)
    app.include_router(notes_router)
    app.include_router(shares_router)
    app.include_router(events_router)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):  # type: ignore[override]
        logging.getLogger("notepin").exception("Unhandled exception")
        return JSONResponse(status_code=500, content={"error": str(exc)})

    return app


app = create_app()


if __name__ == "__main__":
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="NotePin Backend Server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload (dev only)")

    args = parser.parse_args()

    uvicorn.run(
        "notepin.main:app" if args.reload else app,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )
