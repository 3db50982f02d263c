"""
Plugins - Registry of the agent's subsystems.

The registry is append-only: it grows once, at startup, in the declared
order, which is also the initialization and start order.
"""

from .registry import Plugin, PluginRegistry, PluginState

__all__ = [
    "Plugin",
    "PluginRegistry",
    "PluginState",
]
