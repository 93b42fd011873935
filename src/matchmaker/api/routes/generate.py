"""
Conversation endpoint.

POST /api/generate accepts either a JSON ActionRequest or multipart form
data with a ``payload`` field (the same JSON) and an optional ``audio``
file. Every call returns the session snapshot.
"""

import json
from typing import Optional, Tuple

import structlog
from fastapi import APIRouter, Request, UploadFile
from pydantic import ValidationError

from matchmaker.api.dependencies import SessionStoreDep
from matchmaker.api.schemas import ActionRequest, ErrorResponse
from matchmaker.core.exceptions import InvalidRequestError
from matchmaker.core.logging import bind_context
from matchmaker.domain.models.session import SessionSnapshot
from matchmaker.services.session_machine import ActionCommand, parse_action

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["conversation"])


async def _read_request(request: Request) -> Tuple[ActionRequest, Optional[UploadFile]]:
    """Decode JSON or multipart bodies into (payload, audio file)."""
    content_type = request.headers.get("content-type", "")

    try:
        if "multipart/form-data" in content_type:
            form = await request.form()
            raw_payload = form.get("payload")
            if raw_payload is None:
                raise InvalidRequestError("Missing payload in multipart request.")
            if isinstance(raw_payload, str):
                data = json.loads(raw_payload)
            else:
                data = json.loads(await raw_payload.read())
            audio = form.get("audio")
            audio_file = audio if audio is not None and not isinstance(audio, str) else None
            return ActionRequest.model_validate(data), audio_file

        body = await request.body()
        data = json.loads(body) if body else {}
        return ActionRequest.model_validate(data), None
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidRequestError("The request body is not valid JSON.") from e
    except ValidationError as e:
        raise InvalidRequestError("The request payload has an invalid shape.") from e


@router.post(
    "/generate",
    response_model=SessionSnapshot,
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def generate(request: Request, store: SessionStoreDep) -> SessionSnapshot:
    """
    Apply one action to a session and return its snapshot.

    The session is created on first reference; omitting ``sessionId``
    starts a new one.
    """
    payload, audio_file = await _read_request(request)
    action = parse_action(payload.action)

    command = ActionCommand(
        action=action,
        message=payload.message,
        feedback=payload.feedback,
        filters=payload.filters,
    )
    if audio_file is not None:
        command.audio = await audio_file.read()
        command.audio_filename = audio_file.filename or command.audio_filename
        command.audio_content_type = audio_file.content_type

    async with store.acquire(payload.session_id) as machine:
        bind_context(session_id=machine.session.id, action=action.value)
        log.info("action_received", has_audio=command.audio is not None)
        return await machine.handle(command)
