"""
Artifact Vault Threads Module.

Thread records and the composer that derives their system prompts from
bound artifacts.
"""

from .models import (
    InventoryEntry,
    RefreshResult,
    Thread,
    ThreadSummary,
    ThreadSummaryList,
)
from .prompt import compose_system_prompt, strip_inventory_block
from .repository import ThreadRepository
from .composer import ThreadComposer

__all__ = [
    # Models
    "Thread",
    "ThreadSummary",
    "ThreadSummaryList",
    "InventoryEntry",
    "RefreshResult",
    # Prompt
    "compose_system_prompt",
    "strip_inventory_block",
    # Repository
    "ThreadRepository",
    # Composer
    "ThreadComposer",
]
