from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Severity = Literal["success", "error", "info"]


@dataclass(frozen=True)
class Toast:
    message: str
    severity: Severity
    visible: bool = True
