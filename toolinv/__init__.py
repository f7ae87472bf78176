"""
Tool Inventory - inventory backend for a tool crib.

A small service with:
- CRUD over tools, with lazily-created categories and tags
- Record normalization across historical schema variants
- AI-assisted free-text search and free-text tool entry
"""

from toolinv.core.config import InventoryConfig, get_config, set_config

__all__ = [
    'InventoryConfig',
    'get_config',
    'set_config',
]

__version__ = '0.1.0'
