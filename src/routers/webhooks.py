"""Clerk webhook handler.

Clerk signs webhooks via Svix.  Two kinds of events matter here:

- ``user.created`` / ``user.deleted`` keep the ``users`` mapping from Clerk
  user id to FitFare owner id current;
- ``session.created`` is a successful sign-in and advances the daily streak.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import uuid
from typing import Any

from fastapi import APIRouter, Header, HTTPException, Request

from src.dependencies import AppSettings, StreakServiceDep
from src.services.database import get_connection

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = logging.getLogger("fitfare.webhooks")


def _verify_svix_signature(
    payload: bytes,
    svix_id: str,
    svix_timestamp: str,
    svix_signature: str,
    secret: str,
) -> bool:
    """Verify the Svix webhook signature.

    The signature is an HMAC-SHA256 of ``{svix_id}.{svix_timestamp}.{body}``
    using the base64-decoded webhook secret.
    """
    if not secret:
        return False
    # Clerk webhook secrets are prefixed with "whsec_" and base64-encoded
    secret_bytes = base64.b64decode(secret.removeprefix("whsec_"))
    to_sign = f"{svix_id}.{svix_timestamp}.{payload.decode()}".encode()
    expected = hmac.new(secret_bytes, to_sign, hashlib.sha256).digest()
    expected_b64 = base64.b64encode(expected).decode()

    # Space-separated list, each entry prefixed with "v1,"
    for sig in svix_signature.split(" "):
        sig_value = sig.removeprefix("v1,")
        if hmac.compare_digest(expected_b64, sig_value):
            return True
    return False


@router.post("/clerk")
async def clerk_webhook(
    request: Request,
    settings: AppSettings,
    streaks: StreakServiceDep,
    svix_id: str = Header(..., alias="svix-id"),
    svix_timestamp: str = Header(..., alias="svix-timestamp"),
    svix_signature: str = Header(..., alias="svix-signature"),
) -> dict:
    """Handle Clerk webhook events.

    Handles ``session.created``, ``user.created`` and ``user.deleted``;
    everything else is acknowledged and ignored.
    """
    body = await request.body()

    if not _verify_svix_signature(
        body, svix_id, svix_timestamp, svix_signature, settings.clerk_webhook_secret
    ):
        raise HTTPException(status_code=400, detail="Invalid webhook signature")

    event = json.loads(body)
    event_type: str = event.get("type", "")
    data: dict = event.get("data", {})

    logger.info("Clerk webhook received: type=%s id=%s", event_type, event.get("id"))

    if event_type == "session.created":
        clerk_user_id = data.get("user_id")
        if not clerk_user_id:
            logger.warning("session.created event missing user_id; streak not updated")
            return {"status": "ignored"}
        streak = await streaks.record_sign_in_for_clerk_user(clerk_user_id)
        return {"status": "ok" if streak else "ignored"}
    if event_type == "user.created":
        await _provision_user(data)
    elif event_type == "user.deleted":
        await _soft_delete_user(data)
    else:
        logger.debug("Ignoring unhandled Clerk event type: %s", event_type)
        return {"status": "ignored"}

    return {"status": "ok"}


async def _provision_user(data: dict[str, Any]) -> None:
    """Map a newly registered Clerk user to a FitFare owner id (idempotent)."""
    clerk_user_id = data.get("id", "")
    async with get_connection() as conn:
        owner_id = await conn.fetchval(
            """
            INSERT INTO users (user_id, clerk_user_id, email)
            VALUES ($1, $2, $3)
            ON CONFLICT (clerk_user_id) DO NOTHING
            RETURNING user_id
            """,
            uuid.uuid4(),
            clerk_user_id,
            _extract_email(data).lower() or None,
        )
    if owner_id is None:
        logger.info("User already provisioned for clerk_id=%s", clerk_user_id)
    else:
        logger.info("Provisioned user: clerk_id=%s fitfare_user_id=%s", clerk_user_id, owner_id)


async def _soft_delete_user(data: dict[str, Any]) -> None:
    clerk_user_id = data.get("id")
    if not clerk_user_id:
        logger.warning("user.deleted event missing id; cannot soft-delete")
        return
    async with get_connection() as conn:
        await conn.execute(
            """
            UPDATE users SET deleted_at = NOW(), updated_at = NOW()
            WHERE clerk_user_id = $1 AND deleted_at IS NULL
            """,
            clerk_user_id,
        )
    logger.info("Soft-deleted user for clerk_id=%s", clerk_user_id)


def _extract_email(data: dict[str, Any]) -> str:
    """Pull the primary email from Clerk's nested structure."""
    email_addresses = data.get("email_addresses", [])
    for ea in email_addresses:
        if ea.get("id") == data.get("primary_email_address_id"):
            return ea.get("email_address", "")
    if email_addresses:
        return email_addresses[0].get("email_address", "")
    return ""
