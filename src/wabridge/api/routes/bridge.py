"""Bridge API consumed by the assistant backend.

Handlers only read BridgeState; every write happens in the session
lifecycle controller. Sends are awaited and never queued.
"""

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from wabridge.observability.correlation import get_correlation_id
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import safe_log_context
from wabridge.session.state import BridgeState, ConnectionState
from wabridge.whatsapp.outbound import SendFailedError, send_text

router = APIRouter(prefix="/api", tags=["bridge"])

logger = get_logger(__name__)


class SendRequest(BaseModel):
    recipient: str | None = None
    message: str | None = None


def _get_bridge(request: Request) -> BridgeState:
    """Get bridge state from the app (allows test injection)."""
    return request.app.state.bridge


def _parse_since(raw: str | None) -> int:
    """Parse the `since` cursor; anything unparsable counts as 0."""
    if not raw:
        return 0
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return int(float(raw))
    except (ValueError, OverflowError):
        return 0


@router.get("/status")
def status(request: Request) -> dict:
    bridge = _get_bridge(request)
    return {"status": bridge.status.value}


@router.get("/qr")
def qr(request: Request) -> dict:
    """Current pairing QR as a data URI, when one is pending."""
    bridge = _get_bridge(request)

    if bridge.status is ConnectionState.QR_PENDING and bridge.qr_data_url:
        return {"qr": bridge.qr_data_url}
    if bridge.status is ConnectionState.CONNECTED:
        return {"message": "Already connected", "status": ConnectionState.CONNECTED.value}
    return {"message": "No QR code available", "status": bridge.status.value}


@router.get("/incoming")
def incoming(request: Request, since: str | None = None) -> dict:
    """Messages newer than `since` (unix seconds), oldest first.

    Pass the returned latest_timestamp back as the next `since`.
    """
    bridge = _get_bridge(request)
    return bridge.buffer.query(_parse_since(since)).to_dict()


@router.post("/send")
async def send(request: Request) -> JSONResponse:
    """Send a text message through the live session.

    Returns:
        200 with message id on success.
        400 if recipient/message is missing or the body is not JSON.
        503 if the bridge is not connected.
        500 if the protocol send fails.
    """
    correlation_id = get_correlation_id()
    bridge = _get_bridge(request)

    try:
        payload: Any = await request.json()
        body = SendRequest.model_validate(payload)
    except (ValueError, ValidationError):
        # json.JSONDecodeError is a ValueError
        body = SendRequest()

    if not body.recipient or not body.message:
        return JSONResponse(
            status_code=400,
            content={"error": "Missing 'recipient' or 'message' in request body"},
        )

    session = bridge.session
    if not bridge.is_connected or session is None:
        logger.warning(
            "send rejected, bridge not connected",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=correlation_id, status=bridge.status.value
                )
            },
        )
        return JSONResponse(
            status_code=503,
            content={"error": "WhatsApp bridge is not connected", "status": bridge.status.value},
        )

    try:
        jid, message_id = await send_text(
            session,
            recipient=body.recipient,
            text=body.message,
            correlation_id=correlation_id,
        )
    except SendFailedError as e:
        return JSONResponse(
            status_code=500,
            content={"error": f"Failed to send message: {e.description}"},
        )

    return JSONResponse(
        status_code=200,
        content={"success": True, "recipient": jid, "message_id": message_id},
    )
