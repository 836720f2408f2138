from __future__ import annotations

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Request, Response
from pydantic import ValidationError

from bandroom.application.dto.webhook_event import LineWebhookDTO
from bandroom.core.config import settings
from bandroom.infrastructure.line.webhook_verify import verify_signature
from bandroom.wiring.dependencies import get_handle_incoming_event_use_case


router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/webhooks/line")
def webhook_alive() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/webhooks/line")
async def line_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
) -> Response:
    try:
        try:
            use_case = get_handle_incoming_event_use_case()
        except Exception as e:
            logger.exception("Failed to initialize use case", extra={"reason": str(e)})
            return Response(status_code=500)

        body = await request.body()
        signature = request.headers.get("X-Line-Signature")
        if not verify_signature(body, signature, settings.LINE_CHANNEL_SECRET, settings.ENV):
            logger.warning("Rejected webhook with bad signature")
            return Response(status_code=403)

        try:
            payload = json.loads(body.decode("utf-8")) if body else {}
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.exception("Failed to parse webhook body")
            return Response(status_code=400)

        try:
            webhook = LineWebhookDTO.model_validate(payload)
        except ValidationError:
            logger.warning("Webhook body does not match the LINE event schema")
            return Response(status_code=400)

        try:
            events = webhook.extract_events()

            logger.info("Webhook received", extra={"count": len(events)})

            for event in events:
                background_tasks.add_task(use_case.handle, event)

            return Response(status_code=200)
        except Exception as e:
            logger.exception("Error processing webhook event", extra={"reason": str(e)})
            return Response(status_code=500)
    except Exception as e:
        logger.exception("Fatal error in webhook handler", extra={"reason": str(e)})
        return Response(status_code=500)
