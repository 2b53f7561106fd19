"""
Integrations Module

Provider adapters feeding the discovery loop, and the GitHub knowledge unit store.
"""

from kbsync.integrations.base import AdapterRegistry, ProviderAdapter

__all__ = ["AdapterRegistry", "ProviderAdapter"]
