"""
LINE Messaging API push client.

Sends plain-text messages with optional quick-reply buttons. Delivery errors
are raised to the caller; the pomodoro scheduler logs them and carries on.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from coach.notify.base import QuickAction


class LinePushNotifier:
    """HTTP client for the LINE push endpoint."""

    def __init__(
        self,
        access_token: str,
        api_base: str = "https://api.line.me",
        timeout_seconds: float = 10.0,
        client: httpx.Client | None = None,
    ):
        """
        Initialize the push client.

        Args:
            access_token: Channel access token (Bearer)
            api_base: Messaging API base URL
            timeout_seconds: Request timeout
            client: Pre-built httpx client (tests inject a mock transport)
        """
        self.api_base = api_base.rstrip("/")
        self.client = client or httpx.Client(timeout=httpx.Timeout(timeout_seconds))
        self.headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

    def close(self) -> None:
        self.client.close()

    @staticmethod
    def build_message(text: str, quick_actions: list[QuickAction] | None = None) -> dict[str, Any]:
        message: dict[str, Any] = {"type": "text", "text": text}
        if quick_actions:
            message["quickReply"] = {
                "items": [
                    {
                        "type": "action",
                        "action": {"type": "message", "label": action.label, "text": action.text},
                    }
                    for action in quick_actions
                ]
            }
        return message

    def push(self, to: str, text: str, quick_actions: list[QuickAction] | None = None) -> None:
        """
        Push one text message to a user.

        Raises:
            httpx.HTTPError: On API communication failure
        """
        payload = {"to": to, "messages": [self.build_message(text, quick_actions)]}
        response = self.client.post(
            f"{self.api_base}/v2/bot/message/push",
            json=payload,
            headers=self.headers,
        )
        response.raise_for_status()
        logger.debug(f"Pushed message to {to}")
