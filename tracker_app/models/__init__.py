"""
Database models for the tracker service.

Only configuration is persisted here; analytics data lives in the external
Umami collector.
"""

from .option import Option

__all__ = ["Option"]
