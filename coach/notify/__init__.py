"""Outbound notifications."""

from coach.notify.base import LogNotifier, Notifier, QuickAction
from coach.notify.line import LinePushNotifier

__all__ = ["LinePushNotifier", "LogNotifier", "Notifier", "QuickAction"]
