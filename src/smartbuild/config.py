# config.py
from __future__ import annotations

import json
import re
from pathlib import Path
from typing import List, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from . import settings
from .errors import BuildPlanError
from .model import (
    DEFAULT_PROJECT_CONFIG,
    UNSET,
    DockerfileDirectives,
    ImageBuildSpec,
    ImageEntry,
    ProjectConfig,
    TagTemplates,
)
from .ui.console import get_console


# ---------------------------------------------------------------------
# Project config file (smart-docker-build.yml)
# ---------------------------------------------------------------------

class ImageEntrySchema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    dockerfile: str
    name: str


class ProjectConfigSchema(BaseModel):
    """Shape of smart-docker-build.yml. null or false disables a trigger."""
    model_config = ConfigDict(extra="forbid")

    imageTagsOnTagPushed: Optional[List[str]] = Field(
        default_factory=lambda: list(DEFAULT_PROJECT_CONFIG.image_tags_on_tag_pushed)
    )
    imageTagsOnBranchPushed: Optional[List[str]] = Field(
        default_factory=lambda: list(DEFAULT_PROJECT_CONFIG.image_tags_on_branch_pushed)
    )
    watchFiles: List[str] = Field(default_factory=list)
    images: List[ImageEntrySchema] = Field(default_factory=list)

    @field_validator("imageTagsOnTagPushed", "imageTagsOnBranchPushed", mode="before")
    @classmethod
    def _false_disables(cls, value):
        if value is False:
            return None
        return value

    def to_project_config(self) -> ProjectConfig:
        return ProjectConfig(
            image_tags_on_tag_pushed=_as_tuple(self.imageTagsOnTagPushed),
            image_tags_on_branch_pushed=_as_tuple(self.imageTagsOnBranchPushed),
            watch_files=tuple(self.watchFiles),
            images=tuple(ImageEntry(dockerfile=i.dockerfile, name=i.name) for i in self.images),
        )


def _as_tuple(values: Optional[List[str]]) -> TagTemplates:
    return None if values is None else tuple(values)


def load_project_config(root_dir: str | Path) -> ProjectConfig:
    """
    Load smart-docker-build.yml from root_dir.

    A missing file gives the built-in defaults. A file that exists but
    does not parse or does not fit the schema aborts the run.

    Raises:
        BuildPlanError: kind="config", naming the file
    """
    config_path = Path(root_dir) / settings.CONFIG_FILENAME
    if not config_path.exists():
        get_console().print_debug(f"No {settings.CONFIG_FILENAME} found, using defaults")
        return DEFAULT_PROJECT_CONFIG

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ValueError(f"expected a mapping at the top level, got {type(raw).__name__}")
        return ProjectConfigSchema.model_validate(raw).to_project_config()
    except (yaml.YAMLError, ValidationError, ValueError, OSError) as e:
        raise BuildPlanError(
            kind="config",
            message=f"Failed to parse config file {config_path}: {e}",
            path=str(config_path),
            suggestion=(
                "Supported keys: imageTagsOnTagPushed, imageTagsOnBranchPushed "
                "(list of strings, or null to disable), watchFiles (list of strings) "
                "and images (list of {dockerfile, name})."
            ),
        ) from e


# ---------------------------------------------------------------------
# Dockerfile directives
# ---------------------------------------------------------------------

_IMAGE_RE = re.compile(r"^#\s*image:\s*(.+)$", re.IGNORECASE)
_DIRECTIVE_RE = re.compile(
    r"^#\s*(imageTagsOnTagPushed|imageTagsOnBranchPushed|watchFiles):\s*(.+)$"
)
_DISABLED_VALUES = ("null", "false")


def _parse_list_value(value: str, key: str, path: str) -> Tuple[str, ...]:
    """A JSON array must be well-formed; a bare scalar becomes one element."""
    if not value.startswith("["):
        return (value,)

    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise BuildPlanError(
            kind="config",
            message=f"Invalid JSON array for '{key}' in {path}: {e.msg}",
            path=path,
            details={"value": value},
            suggestion=f'Write it as a JSON array, e.g. # {key}: ["{{tag}}", "latest"]',
        ) from e

    if not isinstance(parsed, list) or not all(isinstance(v, str) for v in parsed):
        raise BuildPlanError(
            kind="config",
            message=f"'{key}' in {path} must be an array of strings",
            path=path,
            details={"value": value},
        )
    return tuple(parsed)


def extract_dockerfile_directives(dockerfile_path: str, root_dir: str | Path) -> DockerfileDirectives:
    """
    Read `# key: value` directives from the top of a Dockerfile.

    Only the first DIRECTIVE_SCAN_LINES lines are looked at. `image:` is
    matched case-insensitively, the other keys exactly.
    """
    absolute = Path(root_dir) / dockerfile_path
    try:
        content = absolute.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        get_console().print_debug(f"Could not read {dockerfile_path}: {e}")
        return DockerfileDirectives()

    fields = {}
    for line in content.splitlines()[: settings.DIRECTIVE_SCAN_LINES]:
        line = line.strip()

        image_match = _IMAGE_RE.match(line)
        if image_match:
            fields["image_name"] = image_match.group(1).strip()
            continue

        directive_match = _DIRECTIVE_RE.match(line)
        if not directive_match:
            continue

        key, value = directive_match.group(1), directive_match.group(2).strip()
        if key == "watchFiles":
            if value in _DISABLED_VALUES:
                raise BuildPlanError(
                    kind="config",
                    message=f"'watchFiles' in {dockerfile_path} cannot be {value}",
                    path=dockerfile_path,
                    suggestion='Use [] to always build, or list patterns, e.g. # watchFiles: ["src/**/*"]',
                )
            fields["watch_files"] = _parse_list_value(value, key, dockerfile_path)
        elif key == "imageTagsOnTagPushed":
            fields["image_tags_on_tag_pushed"] = (
                None if value in _DISABLED_VALUES else _parse_list_value(value, key, dockerfile_path)
            )
        else:
            fields["image_tags_on_branch_pushed"] = (
                None if value in _DISABLED_VALUES else _parse_list_value(value, key, dockerfile_path)
            )

    return DockerfileDirectives(**fields)


# ---------------------------------------------------------------------
# Effective configuration
# ---------------------------------------------------------------------

def _pick(directive_value, project_value):
    return project_value if directive_value is UNSET else directive_value


def resolve_image_spec(
    dockerfile_path: str,
    image_name: str,
    project: ProjectConfig,
    directives: DockerfileDirectives,
) -> ImageBuildSpec:
    """Merge project defaults with Dockerfile overrides, field by field."""
    return ImageBuildSpec(
        dockerfile_path=dockerfile_path,
        image_name=image_name,
        tag_templates_on_tag=_pick(directives.image_tags_on_tag_pushed, project.image_tags_on_tag_pushed),
        tag_templates_on_branch=_pick(directives.image_tags_on_branch_pushed, project.image_tags_on_branch_pushed),
        watch_files=_pick(directives.watch_files, project.watch_files),
    )
