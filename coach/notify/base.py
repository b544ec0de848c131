"""Outbound notification contract used by the core."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from loguru import logger


@dataclass(frozen=True)
class QuickAction:
    """A one-tap reply suggestion shown under a message."""

    label: str
    text: str


class Notifier(Protocol):
    def push(self, to: str, text: str, quick_actions: list[QuickAction] | None = None) -> None:
        """Deliver ``text`` to user ``to``; raises on delivery failure."""
        ...


class LogNotifier:
    """Notifier that only logs; used when no chat channel is configured."""

    def push(self, to: str, text: str, quick_actions: list[QuickAction] | None = None) -> None:
        labels = ", ".join(action.label for action in quick_actions or [])
        logger.info(f"[notify -> {to}] {text}" + (f" [{labels}]" if labels else ""))
