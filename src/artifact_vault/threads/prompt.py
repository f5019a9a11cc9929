"""
System prompt composition.

A composed prompt is the user's instructions followed by a machine-readable
inventory block delimited by fixed markers.
"""

import json
from typing import Iterable

from artifact_vault.config import (
    AUTO_PROMPT_MARKER_END,
    AUTO_PROMPT_MARKER_START,
    DEFAULT_SYSTEM_PROMPT,
)

from .models import InventoryEntry


def compose_system_prompt(
    user_prompt: str | None,
    inventory: Iterable[InventoryEntry],
    default_prompt: str = DEFAULT_SYSTEM_PROMPT,
) -> str:
    """
    Compose the effective system prompt for a thread.

    Args:
        user_prompt: Author-supplied instructions (trimmed; default if empty)
        inventory: Artifacts bound to the thread, in listing order
        default_prompt: Instructions used when user_prompt is empty

    Returns:
        ``"{instructions}\\n\\n{start marker}\\n{json}\\n{end marker}\\n"``
    """
    sanitized = (user_prompt or "").strip() or default_prompt
    inventory_json = json.dumps(
        [entry.model_dump() for entry in inventory],
        indent=2,
        ensure_ascii=False,
    )
    auto_block = "\n".join(
        [
            AUTO_PROMPT_MARKER_START.strip(),
            inventory_json,
            AUTO_PROMPT_MARKER_END.strip(),
        ]
    ) + "\n"
    return f"{sanitized}\n\n{auto_block}"


def strip_inventory_block(prompt: str) -> str:
    """Return the instructions part of a composed prompt."""
    marker = AUTO_PROMPT_MARKER_START.strip()
    position = prompt.rfind(marker)
    if position == -1:
        return prompt
    return prompt[:position].rstrip()
