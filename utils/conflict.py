"""
Conflict resolution for the database merge.

A pure decision function: given the modification times of the record that
already exists in the live store and of the incoming backup record, decide
which side wins under the chosen strategy.
"""

from enum import Enum


class ConflictStrategy(str, Enum):
    KEEP_CURRENT = "keep_current"  # live store wins
    KEEP_BACKUP = "keep_backup"  # backup wins
    KEEP_NEWER = "keep_newer"  # larger modified_time wins

    @classmethod
    def parse(cls, value) -> "ConflictStrategy":
        """Accepts an enum member, its value or its name (case-insensitive)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if key in (member.value, member.name.lower()):
                    return member
        raise ValueError(f"Unknown conflict strategy: {value!r}")


class Decision(Enum):
    KEEP_EXISTING = "keep_existing"
    TAKE_INCOMING = "take_incoming"


def resolve(
    existing_modified: int | None,
    incoming_modified: int | None,
    strategy: ConflictStrategy,
) -> Decision:
    """
    Decides a conflict. Never raises.

    KEEP_NEWER with a missing timestamp on either side falls back to the
    KEEP_BACKUP behaviour; this is also how tags (which carry no timestamp)
    are resolved.
    """
    if strategy == ConflictStrategy.KEEP_CURRENT:
        return Decision.KEEP_EXISTING
    if strategy == ConflictStrategy.KEEP_BACKUP:
        return Decision.TAKE_INCOMING

    if existing_modified is None or incoming_modified is None:
        return Decision.TAKE_INCOMING
    if incoming_modified > existing_modified:
        return Decision.TAKE_INCOMING
    return Decision.KEEP_EXISTING
