"""Secret scanning contracts: what was found and how it was masked."""

from pydantic import BaseModel, Field
from typing import List, Tuple
from enum import Enum


class SecretKind(str, Enum):
    """Detector category, in masking priority order."""
    API_KEY = "api_key"
    EMAIL = "email"
    PHONE = "phone"
    HEX_ID = "hex_id"


class SecretMatch(BaseModel):
    """A single detected secret inside a text."""
    kind: SecretKind = Field(..., description="Detector category")
    label: str = Field(..., description="Pattern label, e.g. openai_key or email")
    span: Tuple[int, int] = Field(..., description="Start/end offsets in the scanned text")
    replacement: str = Field(..., description="Masked form of the matched substring")


class ScanResult(BaseModel):
    """Non-overlapping matches ordered by position."""
    matches: List[SecretMatch] = Field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.matches)

    def labels(self) -> List[str]:
        """Distinct labels in order of first appearance."""
        seen: List[str] = []
        for match in self.matches:
            if match.label not in seen:
                seen.append(match.label)
        return seen


class MaskResult(BaseModel):
    """Masked text plus the labels that triggered masking."""
    masked: str
    labels_found: List[str] = Field(default_factory=list)
