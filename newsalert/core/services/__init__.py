"""
Service layer for the news alert pipeline.

This module exports business logic services.
"""

from newsalert.core.services.evaluator import AlertEvaluator, CycleStats, ManualAlertResult
from newsalert.core.services.formatter import render
from newsalert.core.services.notifier import (
    BaseNotifier,
    SmsNotifier,
    TelegramNotifier,
    get_notifier,
)
from newsalert.core.services.subscriptions import SqlSubscriptionStore, SubscriptionStore

__all__ = [
    "AlertEvaluator",
    "BaseNotifier",
    "CycleStats",
    "ManualAlertResult",
    "SmsNotifier",
    "SqlSubscriptionStore",
    "SubscriptionStore",
    "TelegramNotifier",
    "get_notifier",
    "render",
]
