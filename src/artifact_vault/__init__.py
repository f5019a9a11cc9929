"""
Artifact Vault - versioned artifact storage for conversational assistants.

Stores immutable content versions under stable artifact identities, applies
pattern-based structural patches, and keeps each thread's system prompt in
sync with the artifacts bound to it.
"""

__version__ = "0.1.0"

# Wiring helpers are imported explicitly:
# from artifact_vault.vault import open_vault

__all__ = []
