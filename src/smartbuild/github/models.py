# github/models.py
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from smartbuild.errors import BuildPlanError

NULL_SHA = "0" * 40


@dataclass(frozen=True)
class Repository:
    name: str
    owner: str


@dataclass(frozen=True)
class PushEvent:
    """The parts of a GitHub push event payload the planner reads."""
    repository: Optional[Repository]
    ref: Optional[str]
    after: Optional[str]
    before: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PushEvent:
        """Create PushEvent from a webhook/Actions event payload."""
        repo = data.get("repository") or None
        repository = None
        if isinstance(repo, dict) and repo.get("name"):
            owner = repo.get("owner") or {}
            repository = Repository(
                name=repo["name"],
                owner=owner.get("login") or owner.get("name") or "",
            )
        return cls(
            repository=repository,
            ref=data.get("ref") or None,
            after=data.get("after") or None,
            before=data.get("before") or None,
        )

    @classmethod
    def from_file(cls, path: str | Path) -> PushEvent:
        """Load the payload GitHub Actions writes to GITHUB_EVENT_PATH."""
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise BuildPlanError(
                kind="input",
                message=f"Could not read event payload {path}: {e}",
                path=str(path),
            ) from e
        if not isinstance(data, dict):
            raise BuildPlanError(kind="input", message=f"Event payload {path} is not a JSON object", path=str(path))
        return cls.from_dict(data)

    @property
    def diff_base(self) -> str:
        """Previous commit to diff against: `before` when known, else the parent of `after`."""
        if self.before and self.before != NULL_SHA:
            return self.before
        return f"{self.after}^"
