from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple


class ConflictType(IntEnum):
    """Types of conflicts between two pull requests.

    Declaration order is the sort order used for conflict output.
    """

    # Both pull requests change the same localized file.
    # Trigger = new pull, original = existing pull.
    EXISTING_CHANGE = 1

    # The new pull changes an original while an existing pull holds a translation.
    # Trigger = existing pull (translation), original = new pull.
    NEW_ORIGINAL_CHANGE = 2

    # The new pull changes a translation whose original is already being changed.
    # Trigger = new pull (translation), original = existing pull.
    EXISTING_ORIGINAL_CHANGE = 3


@dataclass(frozen=True, order=True)
class Conflict:
    """A conflict between two pull requests at article level"""

    kind: ConflictType

    # The pull request to notify. Its author follows the referenced pull.
    trigger: int

    # The pull request considered authoritative.
    original: int

    # URL of the "original" pull request.
    reference_url: str

    # Sorted, unique article file paths.
    file_set: Tuple[str, ...]

    @classmethod
    def existing_change(cls, trigger, original, reference_url, file_set):
        return cls(ConflictType.EXISTING_CHANGE, trigger, original, reference_url, tuple(file_set))

    @classmethod
    def new_original_change(cls, trigger, original, reference_url, file_set):
        return cls(ConflictType.NEW_ORIGINAL_CHANGE, trigger, original, reference_url, tuple(file_set))

    @classmethod
    def existing_original_change(cls, trigger, original, reference_url, file_set):
        return cls(
            ConflictType.EXISTING_ORIGINAL_CHANGE, trigger, original, reference_url, tuple(file_set)
        )
