"""Outbound notifications for completed stages."""

from onboarding_flows.notifications.notifier import EmailNotifier

__all__ = ["EmailNotifier"]
