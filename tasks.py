"""Invoke tasks for pinevault development.

Every task shells out to `uv` so local runs match CI. Besides the usual
sync/build/test/lint targets, `pine-lint` and `organize-check` run the
project's own CLI against a checkout.
"""

from __future__ import annotations

import shlex
import shutil
from collections.abc import Sequence
from pathlib import Path

from invoke import Collection, Context, task

PROJECT_ROOT = Path(__file__).parent
DIST_DIR = PROJECT_ROOT / "dist"
SOURCE_DIRS = ("src", "tests")


def _uv(ctx: Context, args: Sequence[str], *, echo: bool = True, warn: bool = False) -> bool:
    """Run ``uv`` with ``args`` and return whether it succeeded.

    Args:
        ctx: Invoke execution context.
        args: Arguments following the `uv` executable.
        echo: Echo the command before running it.
        warn: Report failure through the return value instead of raising.
    """
    result = ctx.run(shlex.join(("uv", *args)), echo=echo, pty=True, warn=warn)
    return result is not None and result.ok


@task(help={"dev": "Install the dev extra (pytest, ruff, mypy, invoke)."})
def sync(ctx: Context, dev: bool = True) -> None:
    """Synchronize the virtual environment."""
    args = ["sync"]
    if dev:
        args.extend(["--extra", "dev"])
    _uv(ctx, args)


@task(help={"clean": "Empty dist/ first."})
def build(ctx: Context, clean: bool = False) -> None:
    """Build the sdist and wheel into dist/."""
    if clean and DIST_DIR.exists():
        shutil.rmtree(DIST_DIR)
    _uv(ctx, ["build"])


@task(
    help={
        "k": "pytest -k expression.",
        "path": "Test path (defaults to tests/).",
        "options": "Extra flags forwarded to pytest.",
    }
)
def tests(ctx: Context, k: str = "", path: str = "tests", options: str = "") -> None:
    """Run the pytest suite."""
    args: list[str] = ["run", "pytest"]
    if k:
        args.extend(["-k", k])
    if options:
        args.extend(shlex.split(options))
    args.append(path)
    _uv(ctx, args)


@task(help={"fix": "Apply Ruff auto-fixes.", "check_format": "Also run `ruff format --check`."})
def lint(ctx: Context, fix: bool = False, check_format: bool = False) -> None:
    """Run Ruff over the source and test trees."""
    if check_format:
        _uv(ctx, ["run", "ruff", "format", "--check", *SOURCE_DIRS])
    args = ["run", "ruff", "check", *SOURCE_DIRS]
    if fix:
        args.append("--fix")
    _uv(ctx, args)


@task
def mypy(ctx: Context) -> None:
    """Type-check the package."""
    _uv(ctx, ["run", "mypy", "src"])


@task(help={"root": "Repository holding indicators/, templates/, or examples/."})
def pine_lint(ctx: Context, root: str = ".") -> None:
    """Lint Pine Script sources with `pinevault lint`."""
    _uv(ctx, ["run", "pinevault", "--root", root, "lint"])


@task(help={"root": "Repository to preview."})
def organize_check(ctx: Context, root: str = ".") -> None:
    """Preview the organizer's plan without touching files."""
    _uv(ctx, ["run", "pinevault", "scan", root, "--plan"])


@task
def ci(ctx: Context) -> None:
    """Run format check, lint, type check, and tests like CI does."""
    ctx.invoke(lint, check_format=True)
    ctx.invoke(mypy)
    ctx.invoke(tests)


namespace = Collection(sync, build, tests, lint, mypy, pine_lint, organize_check, ci)
