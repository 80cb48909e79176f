"""
SQLAlchemy models for the news alert pipeline.

This module exports all database models used by the application.
"""

from newsalert.core.models.alerts import AlertHistory, Cadence, Subscription

__all__ = [
    "AlertHistory",
    "Cadence",
    "Subscription",
]
