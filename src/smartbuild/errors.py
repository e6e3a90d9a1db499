# errors.py
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class BuildPlanError(Exception):
    """
    Structured planning failure with enough context for:
      - a one-message CLI report
      - pointing at the offending file or image
      - telling the user how to fix it

    kind is one of: input, config, template, discovery, changes, collision, registry
    """
    kind: str
    message: str
    path: str | None = None
    details: dict = field(default_factory=dict)
    suggestion: str | None = None

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}"]
        if self.path:
            lines.append(f"path={self.path}")
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        if self.suggestion:
            lines.append(self.suggestion)
        return "\n".join(lines)
