"""
Sift - Newsletter Inbox Aggregator

Routes forwarded newsletter emails to a per-user inbox, recognizes the
publisher behind them, and breaks each email body into typed, addressable
sections for a unified reading feed.

Website: https://siftly.space
"""

__version__ = "0.1.0"
