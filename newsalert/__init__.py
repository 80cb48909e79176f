"""News alerts: keyword subscriptions evaluated on a cadence and delivered as digests."""

__version__ = "0.1.0"
