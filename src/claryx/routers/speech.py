import json
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from claryx.schemas.speech import (
    PlaybackStatusResponse,
    SpeakRequest,
    ToggleRequest,
    VoiceCatalogMessage,
    VoiceModel,
)
from claryx.services.speech import PlaybackController, RelaySpeechBackend, select_voice
from claryx.services.speech_session import SpeechConnectionManager

router = APIRouter(prefix="/api/speech", tags=["Speech"])
logger = logging.getLogger(__name__)


def get_controller(request: Request) -> PlaybackController:
    controller = getattr(request.app.state, "playback_controller", None)
    if controller is None:
        raise HTTPException(status_code=503, detail="Speech engine not initialized")
    return controller


def _status(controller: PlaybackController) -> PlaybackStatusResponse:
    return PlaybackStatusResponse.from_status(controller.status())


@router.get("/state", response_model=PlaybackStatusResponse)
async def get_state(controller: PlaybackController = Depends(get_controller)):
    return _status(controller)


@router.post("/speak", response_model=PlaybackStatusResponse)
async def speak(body: SpeakRequest, controller: PlaybackController = Depends(get_controller)):
    """Start reading text aloud, replacing any active session."""
    options = controller.options_with(
        rate=body.rate,
        language_tag=body.language_tag,
        preferred_voice_name=body.preferred_voice_name,
        highlight_as_read=body.highlight_as_read,
    )
    await controller.start(body.text, options)
    return _status(controller)


@router.post("/pause", response_model=PlaybackStatusResponse)
async def pause(controller: PlaybackController = Depends(get_controller)):
    if not await controller.pause():
        raise HTTPException(status_code=409, detail=f"Cannot pause while {controller.state.value}")
    return _status(controller)


@router.post("/resume", response_model=PlaybackStatusResponse)
async def resume(controller: PlaybackController = Depends(get_controller)):
    if not await controller.resume():
        raise HTTPException(status_code=409, detail=f"Cannot resume while {controller.state.value}")
    return _status(controller)


@router.post("/stop", response_model=PlaybackStatusResponse)
async def stop(controller: PlaybackController = Depends(get_controller)):
    if not await controller.stop():
        raise HTTPException(status_code=409, detail="Nothing is playing")
    return _status(controller)


@router.post("/toggle", response_model=PlaybackStatusResponse)
async def toggle(body: ToggleRequest, controller: PlaybackController = Depends(get_controller)):
    await controller.toggle(body.text)
    return _status(controller)


@router.get("/voices", response_model=list[VoiceModel])
async def list_voices(controller: PlaybackController = Depends(get_controller)):
    return [VoiceModel.from_entry(v) for v in controller.catalog.snapshot()]


@router.get("/voices/resolve", response_model=Optional[VoiceModel])
async def resolve_voice(
    language_tag: Optional[str] = Query(default=None, min_length=2),
    preferred_name: str = Query(default=""),
    controller: PlaybackController = Depends(get_controller),
):
    """Preview which voice a speak request would use."""
    voice = select_voice(
        controller.catalog.snapshot(),
        language_tag or controller.default_options.language_tag,
        preferred_name,
        controller.voice_keywords,
    )
    return VoiceModel.from_entry(voice) if voice else None


async def handle_connection(
    websocket: WebSocket,
    client_id: str,
    manager: SpeechConnectionManager,
    backend: RelaySpeechBackend,
    controller: PlaybackController,
):
    """
    Main loop for a browser tab acting as the speech output device.

    The tab receives speak/cancel/pause/resume commands plus progress and
    highlight updates, and reports voices and utterance events back.
    """
    client = await manager.connect(websocket, client_id)
    await manager.send_message(
        client_id,
        {"type": "state", **_status(controller).model_dump(mode="json")},
    )

    try:
        while True:
            raw = await websocket.receive_text()
            client.update_activity()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning(f"Ignoring non-JSON message from {client_id}")
                continue
            if not isinstance(data, dict):
                logger.warning(f"Ignoring non-object message from {client_id}")
                continue

            event_type = data.get("type")

            if event_type == "heartbeat":
                pass

            elif event_type == "voices":
                try:
                    message = VoiceCatalogMessage.model_validate(data)
                except ValidationError as e:
                    logger.warning(f"Ignoring malformed voice list from {client_id}: {e}")
                    continue
                controller.catalog.replace(v.to_entry() for v in message.voices)
                client.voice_count = len(message.voices)

            elif backend.handle_client_message(data):
                pass

            else:
                logger.debug(f"Unhandled message type {event_type!r} from {client_id}")

    except WebSocketDisconnect:
        logger.info(f"Client {client_id} disconnected")
        manager.disconnect(client_id)
    except Exception as e:
        logger.error(f"Unexpected error for {client_id}: {e}")
        manager.disconnect(client_id)


@router.websocket("/connect")
async def speech_connect(websocket: WebSocket):
    client_id = websocket.query_params.get("client_id") or uuid.uuid4().hex[:8]

    app_state = websocket.app.state
    if not hasattr(app_state, "speech_manager"):
        logger.error("Speech manager not initialized")
        await websocket.close(code=1011, reason="Server not ready")
        return

    await handle_connection(
        websocket,
        client_id,
        app_state.speech_manager,
        app_state.speech_backend,
        app_state.playback_controller,
    )
