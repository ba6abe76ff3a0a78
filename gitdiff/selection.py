"""
The reference/secondary commit pair picked by the user.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# Stands in for a commit id when the working tree's modifications are diffed.
UNCOMMITTED = "UNCOMMITTED"


@dataclass
class Selection:
    """Two commit slots that may never hold the same id.

    Assigning a slot the value already held by either slot is a no-op, so
    re-marking a commit is harmless and a zero-width diff cannot be built.
    """

    reference: Optional[str] = None
    secondary: Optional[str] = None

    def set_reference(self, commit_id: str) -> bool:
        """Mark `commit_id` as the reference. Returns True if the slot changed."""
        if commit_id == self.secondary or commit_id == self.reference:
            return False
        self.reference = commit_id
        return True

    def set_secondary(self, commit_id: str) -> bool:
        """Mark `commit_id` as the secondary. Returns True if the slot changed."""
        if commit_id == self.reference or commit_id == self.secondary:
            return False
        self.secondary = commit_id
        return True

    def is_complete(self) -> bool:
        return self.reference is not None and self.secondary is not None

    def marker_for(self, commit_id: Optional[str]) -> str:
        """Return the margin marker ("R", "S" or " ") for a row's commit id."""
        if commit_id is None:
            return " "
        if commit_id == self.reference:
            return "R"
        if commit_id == self.secondary:
            return "S"
        return " "
