"""Session and turn models for the authoring conversation."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from models.product_draft import ImageRef, ProductDraft


class TurnAction(str, Enum):
	"""What the caller asked for on this turn."""

	MESSAGE = "message"
	SAVE = "save"
	PUBLISH = "publish"
	POST_TO_CHANNEL = "post_to_channel"
	SUGGEST_PRODUCTS = "suggest_products"


class Scenario(str, Enum):
	"""Conversation state derived from the loaded draft and incoming input."""

	WELCOME = "welcome"
	LOAD_FOR_EDIT = "load_for_edit"
	GATHERING = "gathering"
	READY_TO_OPTIMIZE = "ready_to_optimize"
	AWAITING_SAVE = "awaiting_save"
	CHANNEL_POST = "channel_post"
	PRODUCT_IDEAS = "product_ideas"


@dataclass
class Session:
	"""One draft plus its idle-eviction timestamp."""

	session_id: str
	draft: ProductDraft = field(default_factory=ProductDraft)
	last_touched_at: float = field(default_factory=lambda: time.time())


@dataclass
class TurnRequest:
	"""Inbound user turn as relayed by a transport."""

	session_id: str
	text: Optional[str] = None
	images: List[ImageRef] = field(default_factory=list)
	action: TurnAction = TurnAction.MESSAGE
	edit_target_id: Optional[int] = None
	topic: Optional[str] = None
	tone: str = "descriptive"
	apply_watermark: bool = False

	@property
	def cleaned_text(self) -> str:
		return (self.text or "").strip()

	def has_input(self) -> bool:
		return bool(self.cleaned_text or self.images)


@dataclass
class TurnOutcome:
	"""Result of a turn returned to the transport.

	`status` is "ok", "rate_limited" or "error". A rate-limited outcome carries
	`retry_after_seconds`; the caller may resubmit the same request once it elapses.
	"""

	text: str
	status: str = "ok"
	scenario: Optional[Scenario] = None
	retry_after_seconds: Optional[float] = None
	session_closed: bool = False
