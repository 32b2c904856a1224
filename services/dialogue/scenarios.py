"""Scenario selection for a single turn."""

from models.product_draft import ProductDraft
from models.session_models import Scenario, TurnAction, TurnRequest


def needs_reload(draft: ProductDraft, request: TurnRequest) -> bool:
    """True when the caller asks to edit an entry other than the one loaded."""
    return request.edit_target_id is not None and request.edit_target_id != draft.edit_target_id


def select_scenario(draft: ProductDraft, request: TurnRequest, has_prior_turns: bool) -> Scenario:
    """Evaluate the scenario table against the loaded draft and the incoming turn.

    Side channels take precedence and leave the draft alone. A requested edit
    target only loads into an otherwise empty draft; the orchestrator resets
    the draft beforehand when the target changes.
    """
    if request.action == TurnAction.SUGGEST_PRODUCTS:
        return Scenario.PRODUCT_IDEAS
    if request.action == TurnAction.POST_TO_CHANNEL:
        return Scenario.CHANNEL_POST
    if request.edit_target_id is not None and draft.is_empty() and draft.edit_target_id != request.edit_target_id:
        return Scenario.LOAD_FOR_EDIT
    if not has_prior_turns and not request.has_input() and request.action == TurnAction.MESSAGE:
        return Scenario.WELCOME
    if draft.generated is not None:
        return Scenario.AWAITING_SAVE
    if not draft.is_ready():
        return Scenario.GATHERING
    return Scenario.READY_TO_OPTIMIZE
