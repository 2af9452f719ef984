"""Non-fatal findings collected during a generation run."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DiagnosticKind(Enum):
    """Why a class or method was skipped or altered."""
    DISCOVERY = "discovery"                          # candidate class could not be resolved
    UNSUPPORTED_PARAMETER = "unsupported_parameter"  # parameter type not expressible in generated code
    UNSUPPORTED_METHOD = "unsupported_method"        # return type or modifiers prevent an override
    DUPLICATE_NAME = "duplicate_name"                # registry field name already taken


@dataclass(frozen=True)
class Diagnostic:
    """One finding, attached to a class (``Foo``) or method (``Foo.Bar``)."""
    kind: DiagnosticKind
    subject: str
    message: str
    file_path: Optional[str] = None
    line: int = 0
    severity: str = "warning"  # "warning" | "error"

    def __str__(self) -> str:
        location = f"{self.file_path}:{self.line}: " if self.file_path else ""
        return f"{location}{self.severity} [{self.kind.value}] {self.subject}: {self.message}"
