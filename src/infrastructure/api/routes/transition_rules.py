"""Transition table API route."""

from fastapi import APIRouter, Depends

from src.domain.services.transition_table import TransitionTable
from src.infrastructure.api.dependencies import get_transition_table
from src.infrastructure.api.middleware.auth import verify_api_key
from src.infrastructure.api.schemas.lifecycle_schema import TransitionRuleApiModel

router = APIRouter()


@router.get(
    "",
    response_model=list[TransitionRuleApiModel],
    summary="List transition rules",
    description="The static (state, action) -> state table with allowed and notified roles",
)
async def list_transition_rules(
    client_id: str = Depends(verify_api_key),
    transition_table: TransitionTable = Depends(get_transition_table),
) -> list[TransitionRuleApiModel]:
    return [
        TransitionRuleApiModel(
            from_state=rule.from_state,
            action=rule.action,
            to_state=rule.to_state,
            roles=sorted(rule.roles, key=lambda r: r.value),
            notify_roles=sorted(rule.notify_roles, key=lambda r: r.value),
        )
        for rule in transition_table.rules
    ]
