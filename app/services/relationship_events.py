from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable


FRIEND_REQUEST_EVENT = "friendship-request"

HOOK_FRIEND_REQUEST_SENT = "friend_request_sent"
HOOK_FRIEND_REMOVED = "friend_removed"

logger = logging.getLogger(__name__)

Hook = Callable[..., Any]


class RelationshipEvents:
    """
    Side-effect channel for the relationship engine.

    Both methods are best-effort: whatever a listener raises is logged and dropped,
    so a broken listener can never undo a relationship change that already happened.
    Subclass and override ``deliver`` to push notifications somewhere real.
    """

    def __init__(self) -> None:
        self._hooks: dict[str, list[Hook]] = defaultdict(list)

    def register_hook(self, name: str, fn: Hook) -> None:
        self._hooks[name].append(fn)

    def deliver(self, event_type: str, actor: int, target: int, metadata: dict[str, Any]) -> None:
        logger.info("notification type=%s actor=%s target=%s metadata=%s", event_type, actor, target, metadata)

    def notify(self, event_type: str, actor: int, target: int, metadata: dict[str, Any] | None = None) -> None:
        try:
            self.deliver(event_type, actor, target, dict(metadata or {}))
        except Exception:
            logger.exception("notification failed type=%s actor=%s target=%s", event_type, actor, target)

    def run_hook(self, name: str, *args: Any) -> None:
        for fn in list(self._hooks.get(name, ())):
            try:
                fn(*args)
            except Exception:
                logger.exception("hook failed name=%s fn=%r", name, fn)


relationship_events = RelationshipEvents()
