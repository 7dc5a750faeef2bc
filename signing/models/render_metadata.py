from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class RenderMetadata:
    """
    What a certificate says about its record, supplied per kind:
    title, descriptive label/value rows, filename prefix, and for
    fitness evaluations the answered checklist plus the verdict.
    """
    title: str
    filename_prefix: str
    rows: List[Tuple[str, str]] = field(default_factory=list)
    checklist_title: Optional[str] = None
    checklist: List[Tuple[str, bool]] = field(default_factory=list)
    verdict: Optional[Tuple[str, bool]] = None   # (text, positive)
