"""Action router — dispatches incoming actions to handlers.

Routes actions by their ``type`` tag to exactly one handler each.

Handlers are async callables that receive the parsed action and the
sender UID, and return a response dict for the sender.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from garrison.network.actions import ACTION_TYPES, Action, parse_action
from garrison.util.errors import ActionRejected

log = logging.getLogger(__name__)

# Handler signature: async (action, sender_uid) -> response dict
Handler = Callable[[Action, int], Awaitable[dict[str, Any]]]


class Router:
    """Action dispatcher.

    Register handlers for action types, then call route() with raw dicts.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def register(self, action_type: str, handler: Handler) -> None:
        """Register the handler for an action type.

        Args:
            action_type: A tag from ``ACTION_TYPES`` (e.g. ``"cancel_task"``).
            handler: Async callable ``(action, sender_uid) -> dict``.
        """
        if action_type not in ACTION_TYPES:
            raise ValueError(f"Unknown action type: {action_type}")
        self._handlers[action_type] = handler
        log.debug("Handler registered: %s", action_type)

    @property
    def registered_types(self) -> list[str]:
        """List of all action types that have a handler."""
        return list(self._handlers.keys())

    @property
    def missing_types(self) -> list[str]:
        """Action types without a handler (should be empty after wiring)."""
        return [t for t in ACTION_TYPES if t not in self._handlers]

    async def dispatch(self, action: Action, sender_uid: int) -> dict[str, Any]:
        """Send an already-parsed action to its handler."""
        handler = self._handlers.get(action.type)
        if handler is None:
            raise ActionRejected(f"No handler for action type: {action.type}")
        return await handler(action, sender_uid)

    async def route(self, raw: dict[str, Any], sender_uid: int) -> dict[str, Any]:
        """Parse and dispatch a raw action dict.

        Raises:
            ActionRejected: the dict is not a valid action.
        """
        return await self.dispatch(parse_action(raw), sender_uid)
