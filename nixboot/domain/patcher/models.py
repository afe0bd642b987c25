"""
Patcher domain models
"""
from dataclasses import dataclass
from enum import Enum


class PatchOutcome(str, Enum):
    """What the patcher did to the document"""
    ALREADY_PRESENT = "already-present"
    APPENDED = "appended"
    CREATED = "created"


@dataclass(frozen=True)
class PatchResult:
    """Patched document text and the outcome that produced it"""
    text: str
    outcome: PatchOutcome

    @property
    def changed(self) -> bool:
        return self.outcome is not PatchOutcome.ALREADY_PRESENT
