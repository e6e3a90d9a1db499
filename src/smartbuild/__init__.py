from .errors import BuildPlanError
from .model import BuildInstruction, ImageBuildSpec, ProjectConfig
from .patterns import is_build_required, matches
from .planner import generate_build_instructions, parse_git_ref
from .templates import render_tags, validate_template_variables

__all__ = [
    "BuildPlanError",
    "BuildInstruction",
    "ImageBuildSpec",
    "ProjectConfig",
    "is_build_required",
    "matches",
    "generate_build_instructions",
    "parse_git_ref",
    "render_tags",
    "validate_template_variables",
]
