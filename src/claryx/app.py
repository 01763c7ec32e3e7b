"""Application factory for the FastAPI service."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import PROJECT_ROOT, Settings, get_settings
from .logging_handlers import DateStampedFileHandler, cleanup_old_logs
from .logging_settings import parse_logging_settings
from .routers.speech import router as speech_router
from .services.speech import (
    HighlightRange,
    PlaybackController,
    PlaybackState,
    RelaySpeechBackend,
    SpeakOptions,
    VoiceCatalog,
    new_event_channel,
)
from .services.speech_session import SpeechConnectionManager

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _resolve(path: Path) -> Path:
    return path if path.is_absolute() else PROJECT_ROOT / path


def _configure_logging(settings: Settings) -> None:
    """Configure logging from LOG_LEVEL, LOG_DIR and the logging settings file."""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    file_settings = parse_logging_settings(_resolve(settings.logging_settings_path))
    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT)
    handlers: list[logging.Handler] = []

    if file_settings.terminal_level is not None:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.setLevel(
            file_settings.effective_level(file_settings.terminal_level, log_level)
        )
        handlers.append(console_handler)

    if settings.log_dir:
        log_dir = _resolve(settings.log_dir)
        file_handler = DateStampedFileHandler(log_dir, tz=settings.log_timezone)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers or [logging.NullHandler()],
        force=True,  # Override any existing configuration
    )

    # Child loggers inherit this level, so "off" silences the whole package
    logging.getLogger("claryx.services.speech").setLevel(
        file_settings.effective_level(file_settings.speech_level, logging.NOTSET)
    )

    uvicorn_level = file_settings.effective_level(file_settings.uvicorn_level, log_level)
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).setLevel(uvicorn_level)

    if settings.log_dir:
        cleanup_old_logs(
            _resolve(settings.log_dir),
            file_settings.retention_hours,
            logger=logging.getLogger(__name__),
        )


def create_app() -> FastAPI:
    # Load .env before settings so LOG_* variables are visible
    load_dotenv()
    settings = get_settings()
    _configure_logging(settings)

    events = new_event_channel()
    manager = SpeechConnectionManager()
    backend = RelaySpeechBackend(manager, events)
    catalog = VoiceCatalog()

    async def _broadcast_progress(percent: int) -> None:
        await manager.broadcast({"type": "progress", "percent": percent})

    async def _broadcast_highlight(highlight: HighlightRange | None) -> None:
        payload = {"start": highlight.start, "end": highlight.end} if highlight else None
        await manager.broadcast({"type": "highlight", "range": payload})

    async def _broadcast_session_end() -> None:
        await manager.broadcast({"type": "session_end"})

    async def _broadcast_state(state: PlaybackState) -> None:
        await manager.broadcast({"type": "state", "state": state.value})

    controller = PlaybackController(
        backend,
        events,
        catalog=catalog,
        default_options=SpeakOptions(
            rate=settings.speech_default_rate,
            language_tag=settings.speech_default_language,
            preferred_voice_name=settings.speech_default_voice,
            highlight_as_read=settings.speech_highlight_as_read,
        ),
        settle_delay=settings.speech_settle_delay.total_seconds(),
        pitch=settings.speech_pitch,
        voice_keywords=settings.speech_preferred_voice_keywords,
        voice_wait=settings.speech_voice_wait.total_seconds(),
        on_progress=_broadcast_progress,
        on_highlight=_broadcast_highlight,
        on_session_end=_broadcast_session_end,
        on_state_change=_broadcast_state,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            # Bounded so a stuck driver task cannot hold up shutdown
            try:
                await asyncio.wait_for(controller.shutdown(), timeout=5.0)
            except asyncio.TimeoutError:
                logging.warning("Playback shutdown timed out after 5s")

    app = FastAPI(
        title="Claryx Speech Engine",
        version="0.1.0",
        description="Read-aloud playback with word highlighting over browser speech synthesis.",
        lifespan=lifespan,
    )

    app.state.speech_manager = manager
    app.state.speech_backend = backend
    app.state.playback_controller = controller

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(speech_router)

    @app.get("/health", tags=["health"])
    async def healthcheck() -> dict[str, str | int]:
        return {
            "status": "ok",
            "playback": controller.state.value,
            "speech_clients": len(manager.active_connections),
            "voices": len(catalog),
        }

    return app


__all__ = ["create_app"]
