"""
Status Routes for the CXA bridge.

Provides:
- GET  /status: Current amplifier state
- POST /status: Change power, mute and/or source, then return the state
- POST /source: Change the source only

Request bodies use the field names "Power", "Mute" and "Source"; keys are
matched case-insensitively.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from cxabridge.errors import InvalidArgumentError, TransportError

if TYPE_CHECKING:
    from cxabridge.amplifier.dispatcher import CommandDispatcher
    from cxabridge.amplifier.state import DeviceStateStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["status"])

STATUS_FIELDS = ("power", "mute", "source")


def register_status_routes(
    app,
    store: DeviceStateStore,
    dispatcher: CommandDispatcher,
    dependencies: list[Any] | None = None,
) -> None:
    """
    Register status routes with the FastAPI app.

    Args:
        app: FastAPI application instance
        store: State store read by GET /status
        dispatcher: Dispatcher used by the POST routes
        dependencies: Extra route dependencies (e.g. authentication)
    """
    app.state.store = store
    app.state.dispatcher = dispatcher
    app.include_router(router, dependencies=dependencies or [])


def parse_request_body(raw: bytes, fields: tuple[str, ...] = STATUS_FIELDS) -> dict[str, str]:
    """
    Decode a JSON request body into lower-cased field values.

    Absent or null fields become "". Unknown keys are ignored.

    Raises:
        ValueError: If the body is not a JSON object or a field is not a string.
    """
    body = json.loads(raw)
    if not isinstance(body, dict):
        raise ValueError(f"expected a JSON object, got {type(body).__name__}")

    values = {name: "" for name in fields}
    for key, value in body.items():
        name = key.lower()
        if name not in values or value is None:
            continue
        if not isinstance(value, str):
            raise ValueError(f"field {key} must be a string")
        values[name] = value
    return values


async def _status_response(
    request: Request,
    errors: dict[str, str] | None = None,
    status_code: int = 200,
) -> JSONResponse:
    state = await request.app.state.store.snapshot()
    content: dict[str, Any] = state.to_dict()
    if errors:
        content["errors"] = errors
    logger.debug("Sent state: %s", content)
    return JSONResponse(content=content, status_code=status_code)


@router.get("/status")
async def get_status(request: Request) -> Response:
    """Get the current amplifier state."""
    return await _status_response(request)


@router.post("/status")
async def post_status(request: Request) -> Response:
    """
    Apply power, mute and source changes in that order.

    Every field is attempted even if an earlier one fails. The response
    always carries the current state; failed fields are listed under
    "errors". Status is 500 if any field failed, whether the value was
    rejected or the command could not be written.
    """
    try:
        values = parse_request_body(await request.body())
    except ValueError as e:
        return PlainTextResponse(str(e), status_code=400)

    logger.info("Request: %s", values)
    dispatcher: CommandDispatcher = request.app.state.dispatcher
    handlers = {
        "power": dispatcher.power,
        "mute": dispatcher.mute,
        "source": dispatcher.source,
    }

    errors: dict[str, str] = {}
    for name in STATUS_FIELDS:
        try:
            await handlers[name](values[name])
        except InvalidArgumentError as e:
            errors[name] = str(e)
        except TransportError as e:
            logger.error("Failed to send %s command: %s", name, e)
            errors[name] = str(e)

    return await _status_response(request, errors, 500 if errors else 200)


@router.post("/source")
async def post_source(request: Request) -> Response:
    """Change the input source."""
    try:
        values = parse_request_body(await request.body(), fields=("source",))
    except ValueError as e:
        return PlainTextResponse(str(e), status_code=400)

    dispatcher: CommandDispatcher = request.app.state.dispatcher
    try:
        await dispatcher.source(values["source"])
    except InvalidArgumentError as e:
        return PlainTextResponse(str(e), status_code=400)
    except TransportError as e:
        logger.error("Failed to send source command: %s", e)
        return PlainTextResponse(str(e), status_code=500)

    return await _status_response(request)
