"""
Diagnostics collected during a generation run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List


class DiagnosticKind(Enum):
    """Conditions recorded instead of aborting a run."""
    MISSING_ROOT = "missing_root"
    UNSUPPORTED_FORMAT = "unsupported_format"
    EXCLUDED_RUNTIME_BUNDLE = "excluded_runtime_bundle"
    EXCLUDED_POWER_OF_TWO = "excluded_power_of_two"
    PACKER_FAILURE = "packer_failure"
    INDEX_WRITE_FAILURE = "index_write_failure"


@dataclass(frozen=True)
class Diagnostic:
    """One recorded condition with the path it concerns."""
    kind: DiagnosticKind
    path: str
    message: str

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.path}: {self.message}"


@dataclass
class RunReport:
    """Result of one generation run."""
    diagnostics: List[Diagnostic] = field(default_factory=list)
    atlases: List[str] = field(default_factory=list)
    results: List[Any] = field(default_factory=list)
    failed_groups: Dict[str, str] = field(default_factory=dict)
    step_durations: Dict[str, float] = field(default_factory=dict)
    skipped: bool = False

    @property
    def success(self) -> bool:
        """A run succeeds when no group failed."""
        return not self.failed_groups

    def add(self, kind: DiagnosticKind, path: str, message: str) -> None:
        """Record a diagnostic."""
        self.diagnostics.append(Diagnostic(kind, path, message))

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        """Record several diagnostics."""
        self.diagnostics.extend(diagnostics)

    def fail_group(self, atlas_path: str, reason: str) -> None:
        """Mark a packing group as failed."""
        self.failed_groups[atlas_path] = reason

    def by_kind(self, kind: DiagnosticKind) -> List[Diagnostic]:
        """Return diagnostics of one kind."""
        return [diagnostic for diagnostic in self.diagnostics if diagnostic.kind == kind]

    def summary(self) -> Dict[str, int]:
        """Count diagnostics per kind."""
        counts: Dict[str, int] = {}
        for diagnostic in self.diagnostics:
            counts[diagnostic.kind.value] = counts.get(diagnostic.kind.value, 0) + 1
        return counts
