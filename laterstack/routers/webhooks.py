"""Identity-provider webhook receiver (user.created / user.updated)."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from svix.webhooks import WebhookVerificationError

from laterstack.config import get_settings
from laterstack.services.identity import profile_from_clerk_user, verify_webhook
from laterstack.services.users import get_user_provisioner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])

USER_EVENTS = {"user.created", "user.updated"}


@router.post("/clerk")
async def clerk_webhook(request: Request):
    """Sync users from identity-provider events.

    Both created and updated events upsert, so they converge with lazy
    provisioning no matter which arrives first.
    """
    secret = get_settings().clerk_webhook_secret
    if not secret:
        logger.error("Missing CLERK_WEBHOOK_SECRET environment variable")
        return PlainTextResponse("Webhook secret not configured", status_code=500)

    body = await request.body()
    try:
        event = verify_webhook(secret, body, request.headers)
    except WebhookVerificationError as e:
        logger.warning("Rejected webhook: %s", e)
        return PlainTextResponse("Error verifying webhook", status_code=400)
    except ValueError:
        # Malformed signature list or a signed body that is not JSON
        return PlainTextResponse("Invalid payload", status_code=400)

    event_type = event.get("type") if isinstance(event, dict) else None
    data = event.get("data") if isinstance(event, dict) else None
    if event_type not in USER_EVENTS:
        logger.info("Ignoring webhook event %s", event_type)
        return {"received": True}
    if not isinstance(data, dict) or not data.get("id"):
        return PlainTextResponse("Invalid payload", status_code=400)

    try:
        user = await get_user_provisioner().sync_from_identity_event(
            data["id"], profile_from_clerk_user(data)
        )
    except Exception:
        logger.exception("Error handling %s", event_type)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    logger.info("%s synced for %s (user %s)", event_type, data["id"], user.id)
    return {"received": True}
