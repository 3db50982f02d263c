"""
Contracts (Protocols) for the agent.

These protocols define the interfaces plugins must satisfy.
Using Protocol enables structural subtyping - no inheritance required.
"""

from .plugin import AllocatingPlugin, PluginProtocol

__all__ = [
    "AllocatingPlugin",
    "PluginProtocol",
]
