"""
Domain events for profile changes

Profile writes publish ProfileSkillsChanged; the cached-match invalidator,
the skill popularity ledger and the hot-cache invalidator subscribe to it.
"""

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Tuple, Type
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfileSkillsChanged:
    uid: str
    previous_offered: Tuple[str, ...] = ()
    current_offered: Tuple[str, ...] = ()
    changed_fields: Tuple[str, ...] = ()
    deleted: bool = False


Handler = Callable[[object], Awaitable[None]]


@dataclass
class EventBus:
    _handlers: Dict[Type, List[Handler]] = field(default_factory=dict)

    def subscribe(self, event_type: Type, handler: Handler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    async def publish(self, event: object) -> None:
        """Run handlers in subscription order; a failing handler does not stop the rest"""
        for handler in self._handlers.get(type(event), []):
            try:
                await handler(event)
            except Exception as e:
                name = getattr(handler, "__qualname__", repr(handler))
                logger.error(f"[EVENTS] Handler {name} failed for {type(event).__name__}: {e}", exc_info=True)
