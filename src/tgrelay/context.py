from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .commands import CommandDispatcher
from .config import DEFAULT_IDLE_TICK_S, DEFAULT_POLL_TIMEOUT_S
from .model import ChatTask
from .sessions import SessionTracker
from .task_queue import TaskQueue

if TYPE_CHECKING:
    from .completion import Completer
    from .membership import MembershipGate
    from .telegram.client import BotClient


@dataclass(slots=True)
class Relay:
    """Process-wide state shared by the fetch loop, intake handlers and worker."""

    bot: BotClient
    completer: Completer
    bot_id: int
    gate: MembershipGate | None = None
    gate_enabled: bool = True
    admin_ids: frozenset[int] = frozenset()
    poll_timeout_s: int = DEFAULT_POLL_TIMEOUT_S
    idle_tick_s: float = DEFAULT_IDLE_TICK_S
    sessions: SessionTracker = field(default_factory=SessionTracker)
    tasks: TaskQueue[ChatTask] = field(default_factory=TaskQueue)
    commands: CommandDispatcher = field(default_factory=CommandDispatcher)
    offset: int | None = None

    @property
    def active_gate(self) -> MembershipGate | None:
        """The gate private chats must pass, or ``None`` while gating is off."""
        return self.gate if self.gate_enabled else None

    @property
    def gating(self) -> bool:
        return self.active_gate is not None

    def is_admin(self, user_id: int | None) -> bool:
        return user_id is not None and user_id in self.admin_ids
