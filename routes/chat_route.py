"""FastAPI routes for authoring conversations."""

from typing import List, Literal, Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from pydantic import BaseModel, Field

from controllers.chat_controller import decode_images, read_uploads, submit_turn
from models.session_models import TurnAction

router = APIRouter(prefix="/chat", tags=["chat"])


class TurnPayload(BaseModel):
	text: Optional[str] = None
	images: List[str] = Field(default_factory=list, description="Base64 strings or data URIs.")
	action: TurnAction = TurnAction.MESSAGE
	edit_target_id: Optional[int] = None
	topic: Optional[str] = None
	tone: Literal["descriptive", "playful"] = "descriptive"
	apply_watermark: bool = False


@router.post("/{session_id}/turns")
async def post_turn_route(request: Request, session_id: str, payload: TurnPayload):
	"""Submit one user turn; returns the assistant reply and turn status."""
	try:
		images = decode_images(payload.images)
		return await submit_turn(
			request,
			session_id,
			payload.text,
			images,
			action=payload.action,
			edit_target_id=payload.edit_target_id,
			topic=payload.topic,
			tone=payload.tone,
			apply_watermark=payload.apply_watermark,
		)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/photos")
async def post_photos_route(
	request: Request,
	session_id: str,
	photos: List[UploadFile] = File(...),
	text: Optional[str] = Form(None),
):
	"""Submit photos as a multipart upload, optionally with a message."""
	try:
		images = await read_uploads(photos)
		return await submit_turn(request, session_id, text, images)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
