"""Relay Telegram bot updates to the orchestrator and send replies back."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException, Request

from controllers.chat_controller import get_orchestrator
from models.product_draft import ImageRef
from models.session_models import TurnAction, TurnRequest
from services.dialogue.orchestrator import STORE_APOLOGY
from services.errors import ExternalServiceFailure
from services.telegram.bot_api import TelegramBotClient

LOGGER = logging.getLogger(__name__)

_COMMANDS = {
	"/save": TurnAction.SAVE,
	"/publish": TurnAction.PUBLISH,
	"/ideas": TurnAction.SUGGEST_PRODUCTS,
}
_EDIT = re.compile(r"^/edit\s+(\d+)\s*$")
_POST = re.compile(r"^/post\s+(\d+)(?:\s+(.+))?$", re.S)


def session_id_for(chat_id: Any) -> str:
	return f"telegram:{chat_id}"


def get_bot(request: Request) -> TelegramBotClient:
	bot = getattr(request.app.state, "telegram_client", None)
	if bot is None:
		raise HTTPException(status_code=503, detail="Telegram bot is not configured.")
	return bot


def parse_command(text: str) -> Tuple[TurnAction, Optional[str], Optional[int], Optional[str]]:
	"""Return (action, remaining text, edit target, topic) for a message."""
	command = text.split(maxsplit=1)[0].split("@", 1)[0].lower() if text else ""
	if command in _COMMANDS:
		return _COMMANDS[command], None, None, None
	match = _EDIT.match(text)
	if match:
		return TurnAction.MESSAGE, None, int(match.group(1)), None
	match = _POST.match(text)
	if match:
		topic = match.group(2).strip() if match.group(2) else None
		return TurnAction.POST_TO_CHANNEL, None, int(match.group(1)), topic or None
	return TurnAction.MESSAGE, text or None, None, None


async def _download_photo(bot: TelegramBotClient, sizes: List[Dict[str, Any]]) -> ImageRef:
	# Telegram lists sizes smallest first
	largest = max(sizes, key=lambda size: size.get("file_size") or size.get("width", 0) * size.get("height", 0))
	raw = await bot.get_file_bytes(largest["file_id"])
	return ImageRef(raw_bytes=raw, file_name=f"{largest.get('file_unique_id') or largest['file_id']}.jpg")


async def _reply(bot: TelegramBotClient, chat_id: Any, text: str) -> None:
	# The turn is already persisted; a failed reply must not trigger a redelivery
	try:
		await bot.send_text(chat_id, text)
	except ExternalServiceFailure as exc:
		LOGGER.error("Reply to chat %s failed: %s", chat_id, exc)


async def handle_update(request: Request, update: Dict[str, Any]) -> Dict[str, Any]:
	"""Process one webhook update. Non-message updates are acknowledged and ignored."""
	message = update.get("message") or update.get("edited_message")
	if not message or "chat" not in message:
		return {"ok": True}

	bot = get_bot(request)
	orchestrator = get_orchestrator(request)
	chat_id = message["chat"]["id"]
	session_id = session_id_for(chat_id)
	text = (message.get("text") or message.get("caption") or "").strip()

	if text.split("@", 1)[0] == "/start":
		if not await orchestrator.reset(session_id):
			await _reply(bot, chat_id, STORE_APOLOGY)
			return {"ok": True, "status": "error"}
		text = ""

	images: List[ImageRef] = []
	if message.get("photo"):
		try:
			images.append(await _download_photo(bot, message["photo"]))
		except ExternalServiceFailure as exc:
			LOGGER.error("Photo download failed for chat %s: %s", chat_id, exc)
			await _reply(bot, chat_id, "Sorry, I couldn't download that photo. Please send it again.")
			return {"ok": True}

	action, remaining, edit_target_id, topic = parse_command(text)
	outcome = await orchestrator.handle_turn(
		TurnRequest(
			session_id=session_id,
			text=remaining,
			images=images,
			action=action,
			edit_target_id=edit_target_id,
			topic=topic,
		)
	)
	await _reply(bot, chat_id, outcome.text)
	return {"ok": True, "status": outcome.status}
