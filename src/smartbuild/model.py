# model.py
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union


class _Unset(enum.Enum):
    UNSET = "unset"

    def __repr__(self) -> str:
        return "UNSET"


# Marks a directive that was not given, so the project value applies.
UNSET = _Unset.UNSET

# None means the trigger is disabled for that event type.
TagTemplates = Optional[Tuple[str, ...]]


@dataclass(frozen=True)
class ImageEntry:
    """An image declared explicitly in the project config."""
    dockerfile: str
    name: str


@dataclass(frozen=True)
class ProjectConfig:
    """Repository-wide defaults loaded from smart-docker-build.yml."""
    image_tags_on_tag_pushed: TagTemplates = ("{tag}",)
    image_tags_on_branch_pushed: TagTemplates = ("{branch}-{timestamp}-{sha}", "latest")
    watch_files: Tuple[str, ...] = ()
    # when non-empty, replaces auto-discovery
    images: Tuple[ImageEntry, ...] = ()


DEFAULT_PROJECT_CONFIG = ProjectConfig()


@dataclass(frozen=True)
class DockerfileDirectives:
    """
    Overrides declared as `# key: value` comments at the top of a Dockerfile.

    Every override is independent: UNSET inherits the project value,
    None disables the trigger, a tuple replaces the project value.
    """
    image_name: Optional[str] = None
    image_tags_on_tag_pushed: Union[TagTemplates, _Unset] = UNSET
    image_tags_on_branch_pushed: Union[TagTemplates, _Unset] = UNSET
    watch_files: Union[Tuple[str, ...], _Unset] = UNSET


@dataclass(frozen=True)
class ImageBuildSpec:
    """Effective configuration for one discovered Dockerfile."""
    dockerfile_path: str
    image_name: str
    tag_templates_on_tag: TagTemplates
    tag_templates_on_branch: TagTemplates
    watch_files: Tuple[str, ...]


@dataclass(frozen=True)
class GitRef:
    branch: Optional[str] = None
    tag: Optional[str] = None

    @property
    def is_branch(self) -> bool:
        return self.branch is not None

    @property
    def is_tag(self) -> bool:
        return self.tag is not None


@dataclass(frozen=True)
class ChangedFile:
    """A file touched between two commits, as reported by the git host."""
    filename: str
    status: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict) -> ChangedFile:
        return cls(filename=data["filename"], status=data.get("status"))


@dataclass(frozen=True)
class BuildInstruction:
    """One (dockerfile, image, tag) triple for the external builder."""
    dockerfile_path: str
    image_name: str
    image_tag: str

    @property
    def reference(self) -> str:
        return f"{self.image_name}:{self.image_tag}"

    def to_dict(self) -> Dict[str, str]:
        """Convert to the camelCase shape the build step consumes."""
        return {
            "dockerfilePath": self.dockerfile_path,
            "imageName": self.image_name,
            "imageTag": self.image_tag,
        }
