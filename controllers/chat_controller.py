"""Turn submission helpers for the web chat surface."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse

from models.product_draft import ImageRef
from models.session_models import TurnAction, TurnOutcome, TurnRequest
from services.dialogue.orchestrator import DialogueOrchestrator
from utils.media_validation import decode_image_payload, read_image_upload


def get_orchestrator(request: Request) -> DialogueOrchestrator:
	"""Retrieve the shared orchestrator from the app state."""
	orchestrator = getattr(request.app.state, "orchestrator", None)
	if orchestrator is None:
		raise HTTPException(status_code=500, detail="Orchestrator not initialized.")
	return orchestrator


def decode_images(images: List[str]) -> List[ImageRef]:
	"""Turn base64 payloads into staged images, rejecting undecodable ones."""
	refs = []
	for index, data in enumerate(images):
		try:
			raw = decode_image_payload(data)
		except ValueError as exc:
			raise HTTPException(status_code=400, detail=f"Image {index}: {exc}") from exc
		refs.append(ImageRef(raw_bytes=raw))
	return refs


async def read_uploads(files: List[UploadFile]) -> List[ImageRef]:
	refs = []
	for upload in files:
		raw = await read_image_upload(upload)
		refs.append(ImageRef(raw_bytes=raw, file_name=upload.filename or None))
	return refs


def outcome_response(outcome: TurnOutcome) -> Any:
	"""Serialize an outcome; rate-limited turns become HTTP 429 with Retry-After."""
	body: Dict[str, Any] = {
		"text": outcome.text,
		"status": outcome.status,
		"scenario": outcome.scenario.value if outcome.scenario else None,
		"retry_after_seconds": outcome.retry_after_seconds,
		"session_closed": outcome.session_closed,
	}
	if outcome.status == "rate_limited":
		headers = {}
		if outcome.retry_after_seconds is not None:
			headers["Retry-After"] = str(int(round(outcome.retry_after_seconds)))
		return JSONResponse(status_code=429, content=body, headers=headers)
	return body


async def submit_turn(
	request: Request,
	session_id: str,
	text: Optional[str],
	images: List[ImageRef],
	action: TurnAction = TurnAction.MESSAGE,
	edit_target_id: Optional[int] = None,
	topic: Optional[str] = None,
	tone: str = "descriptive",
	apply_watermark: bool = False,
) -> Any:
	"""Run one turn through the orchestrator and shape the HTTP response."""
	orchestrator = get_orchestrator(request)
	outcome = await orchestrator.handle_turn(
		TurnRequest(
			session_id=session_id,
			text=text,
			images=images,
			action=action,
			edit_target_id=edit_target_id,
			topic=topic,
			tone=tone,
			apply_watermark=apply_watermark,
		)
	)
	return outcome_response(outcome)
