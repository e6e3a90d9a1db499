# cli.py
from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from smartbuild import settings
from smartbuild.errors import BuildPlanError
from smartbuild.github.api_client import GitHubClient
from smartbuild.github.models import PushEvent
from smartbuild.model import BuildInstruction
from smartbuild.oracle import REGISTRY_POLICIES, GitHubChanges, LocalGitChanges, RegistryOracle
from smartbuild.planner import generate_build_instructions
from smartbuild.ui.console import Console, get_console, set_console


def write_outputs(instructions: list[BuildInstruction], github_output: str | None) -> None:
    """
    Publish build_args and has_builds.

    Appends to the $GITHUB_OUTPUT file when running in Actions, otherwise
    prints `name=value` lines to stdout.
    """
    build_args = json.dumps([i.to_dict() for i in instructions])
    has_builds = "true" if instructions else "false"
    lines = [f"build_args={build_args}", f"has_builds={has_builds}"]

    if github_output:
        with open(github_output, "a", encoding="utf-8") as fh:
            fh.write("\n".join(lines) + "\n")
    else:
        for line in lines:
            click.echo(line)


def _report(error: BuildPlanError) -> None:
    console = get_console()
    details = [f"{k}: {v}" for k, v in error.details.items()]
    if error.path:
        details.insert(0, f"path: {error.path}")
    console.print_error(
        f"{error.kind} error",
        error.message,
        details=details or None,
        suggestion=error.suggestion,
    )


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """smart-docker-build: decide which Docker images to build for a push."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.option("--token", envvar="INPUT_TOKEN", default="", help="GitHub token (env: INPUT_TOKEN)")
@click.option(
    "--timezone",
    envvar="INPUT_TIMEZONE",
    default=settings.DEFAULT_TIMEZONE,
    show_default=True,
    help="Timezone for {timestamp} (env: INPUT_TIMEZONE)",
)
@click.option(
    "--event-path",
    envvar="GITHUB_EVENT_PATH",
    required=True,
    type=click.Path(dir_okay=False),
    help="Push event payload JSON (env: GITHUB_EVENT_PATH)",
)
@click.option(
    "--workspace",
    envvar="GITHUB_WORKSPACE",
    default=".",
    show_default=True,
    type=click.Path(file_okay=False),
    help="Repository checkout to scan (env: GITHUB_WORKSPACE)",
)
@click.option(
    "--github-output",
    envvar="GITHUB_OUTPUT",
    default=None,
    help="File to append step outputs to (env: GITHUB_OUTPUT)",
)
@click.option(
    "--changes-from",
    type=click.Choice(["github", "git"]),
    default="github",
    show_default=True,
    help="Where to read the changed-file list from",
)
@click.option(
    "--registry-policy",
    type=click.Choice(list(REGISTRY_POLICIES)),
    default=settings.REGISTRY_FAILURE_POLICY,
    show_default=True,
    help="strict: abort when a registry lookup fails; lenient: treat it as 'tag is free'",
)
@click.option(
    "--force-overwrite/--no-force-overwrite",
    envvar="INPUT_FORCE_OVERWRITE",
    default=False,
    help="Skip the registry tag-uniqueness check (env: INPUT_FORCE_OVERWRITE)",
)
@click.option("--workers", default=None, type=int, help="Parallel registry checks across images")
@click.pass_context
def plan(ctx, token, timezone, event_path, workspace, github_output, changes_from, registry_policy, force_overwrite, workers):
    """Work out the build plan for the triggering push."""
    console = get_console()
    root = Path(workspace)

    try:
        if not token or not token.strip():
            raise BuildPlanError(
                kind="input",
                message="Token is required but not provided",
                suggestion="Pass --token or set INPUT_TOKEN.",
            )

        event = PushEvent.from_file(event_path)
        client = GitHubClient(token)
        change_source = LocalGitChanges(root) if changes_from == "git" else GitHubChanges(client)
        registry = RegistryOracle(client, policy=registry_policy, force_overwrite=force_overwrite)

        instructions = generate_build_instructions(
            token,
            timezone,
            event,
            root,
            client=client,
            change_source=change_source,
            registry=registry,
            max_workers=workers,
        )

        console.print_instructions(instructions)
        if not instructions:
            console.print_info("No images to build based on current configuration and changes")
        else:
            console.print_info(f"Generated {len(instructions)} build configuration(s)")
        write_outputs(instructions, github_output)

    except BuildPlanError as e:
        _report(e)
        sys.exit(1)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


if __name__ == "__main__":
    cli()
