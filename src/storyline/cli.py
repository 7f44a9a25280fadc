"""Command-line access to a storyline workspace."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from .errors import StorylineError
from .exports import export_scene_images
from .preferences import FilePreferenceStore, PreferenceStore
from .projects import ProjectStore
from .settings import StorylineSettings, configure_logging
from .workspace import SORT_ORDERS, Workspace


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point for managing projects in a workspace."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = StorylineSettings.from_env()
        configure_logging(args.log_level or settings.log_level)
        workspace = _open_workspace(args.root, settings)
        message = args.handler(workspace, args)
    except (StorylineError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if message:
        print(message)
    return 0


def _open_workspace(root: str | None, settings: StorylineSettings) -> Workspace:
    preferences: PreferenceStore | None = None
    if settings.preferences_path is not None:
        preferences = FilePreferenceStore(settings.preferences_path)

    chosen = Path(root) if root else settings.root
    if chosen is not None:
        return Workspace.open(chosen, preferences=preferences, settings=settings)

    workspace = Workspace.restore_last(preferences, settings=settings)
    if workspace is None:
        raise ValueError("no workspace root given; pass --root or set STORYLINE_ROOT")
    return workspace


def _reconcile(workspace: Workspace, args: argparse.Namespace) -> str:
    index = workspace.reconcile()
    return f"Indexed {len(index.projects)} projects in {workspace.root}"


def _list(workspace: Workspace, args: argparse.Namespace) -> str:
    lines = [
        f"{entry.id}\t{entry.slug}\t{entry.project_name}\t{entry.prompt_count} scenes"
        for entry in workspace.list_projects(args.order)
    ]
    return "\n".join(lines)


def _create(workspace: Workspace, args: argparse.Namespace) -> str:
    summary = ProjectStore(workspace).create(
        args.name, video_generator=args.generator, notes=args.notes
    )
    return f"Created {summary.slug} ({summary.id})"


def _duplicate(workspace: Workspace, args: argparse.Namespace) -> str:
    store = ProjectStore(workspace)
    session = store.open(args.project_id)
    try:
        summary = store.duplicate(session, args.name)
    finally:
        store.close(session)
    return f"Duplicated into {summary.slug} ({summary.id})"


def _delete(workspace: Workspace, args: argparse.Namespace) -> str:
    result = ProjectStore(workspace).delete(args.project_id)
    if not result.directory_removed:
        return f"Deleted {result.slug} from the index; its directory could not be removed"
    return f"Deleted {result.slug}"


def _export_images(workspace: Workspace, args: argparse.Namespace) -> str:
    store = ProjectStore(workspace)
    session = store.open(args.project_id)
    try:
        result = export_scene_images(session)
    finally:
        store.close(session)
    message = f"Exported {result.exported_count} images to {result.directory}"
    if result.skipped:
        message += f" (skipped: {', '.join(result.skipped)})"
    return message


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storyline",
        description="Manage storyline projects stored in a workspace directory.",
    )
    parser.add_argument(
        "--root",
        help="Workspace directory. Defaults to STORYLINE_ROOT or the last opened workspace.",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level for diagnostics (defaults to STORYLINE_LOG_LEVEL or WARNING).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    reconcile = commands.add_parser("reconcile", help="Rebuild the index from disk.")
    reconcile.set_defaults(handler=_reconcile)

    listing = commands.add_parser("list", help="List projects in the index.")
    listing.add_argument("--order", choices=SORT_ORDERS, default="updated")
    listing.set_defaults(handler=_list)

    create = commands.add_parser("create", help="Create an empty project.")
    create.add_argument("name")
    create.add_argument("--generator", default="", help="Video generator label.")
    create.add_argument("--notes", default="")
    create.set_defaults(handler=_create)

    duplicate = commands.add_parser("duplicate", help="Copy a project under a new name.")
    duplicate.add_argument("project_id")
    duplicate.add_argument("name")
    duplicate.set_defaults(handler=_duplicate)

    delete = commands.add_parser("delete", help="Delete a project.")
    delete.add_argument("project_id")
    delete.set_defaults(handler=_delete)

    export = commands.add_parser("export-images", help="Export scene images in order.")
    export.add_argument("project_id")
    export.set_defaults(handler=_export_images)

    return parser


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
