"""Webhook endpoint for the Telegram bot."""

import logging
import os
from typing import Any, Dict, Optional

from fastapi import APIRouter, Header, HTTPException, Request

from controllers.telegram_controller import handle_update

router = APIRouter(prefix="/telegram", tags=["telegram"])


@router.post("/webhook")
async def telegram_webhook_route(
	request: Request,
	update: Dict[str, Any],
	x_telegram_bot_api_secret_token: Optional[str] = Header(None),
):
	"""Receive a bot update. Replies are sent through the Bot API, not the response body."""
	secret = os.getenv("TELEGRAM_WEBHOOK_SECRET")
	if secret and x_telegram_bot_api_secret_token != secret:
		raise HTTPException(status_code=403, detail="Invalid webhook secret.")
	try:
		return await handle_update(request, update)
	except HTTPException:
		raise
	except Exception as exc:
		logging.error("Telegram update failed: %s", exc)
		raise HTTPException(status_code=500, detail=str(exc))
