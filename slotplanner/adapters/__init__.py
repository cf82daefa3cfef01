"""
Adapters layer - Storage integrations.
"""

from .json_store import JsonDataStore

__all__ = ["JsonDataStore"]
