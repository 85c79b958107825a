"""Action handler registry: one handler per ActionType, no fallback."""

from typing import Dict, Optional

from world_server.handlers.context import ActionContext, ActionHandler
from world_server.handlers.destruction import DESTRUCTION_HANDLERS
from world_server.handlers.human import HUMAN_HANDLERS
from world_server.handlers.protection import PROTECTION_HANDLERS
from world_server.schemas import ActionType

ACTION_HANDLERS: Dict[ActionType, ActionHandler] = {
    **DESTRUCTION_HANDLERS,
    **PROTECTION_HANDLERS,
    **HUMAN_HANDLERS,
}


def get_handler(action_type: ActionType) -> Optional[ActionHandler]:
    return ACTION_HANDLERS.get(action_type)


__all__ = ["ACTION_HANDLERS", "ActionContext", "ActionHandler", "get_handler"]
