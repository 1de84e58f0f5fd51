"""barebones command line interface.

Streaming commands (clone, add, sync) print one progress line per event
and end with ``[DONE]`` or ``ERROR: <message>``.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .logging_config import setup_logging
from .worktree.config import get_barebones_config
from .worktree.errors import BareBonesError
from .worktree.pipeline import WorktreePipeline
from .worktree.progress import line_sink


def _print_line(line: str) -> None:
    print(line, flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="barebones", description="Multi-repository worktree manager")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="show informational log messages")
    parser.add_argument("--debug", action="store_true", help="show debug log messages")
    sub = parser.add_subparsers(dest="command", required=True)

    clone = sub.add_parser("clone", help="bare-clone a repository and create __main__")
    clone.add_argument("url")
    clone.add_argument("target", help="directory name under the owner directory")

    add = sub.add_parser("add", help="create a worktree")
    add.add_argument("repo", type=Path, help="repository root")
    add.add_argument("name")
    add.add_argument("--branch", help="check out this existing branch instead of creating one")

    remove = sub.add_parser("remove", help="remove a worktree and its branch")
    remove.add_argument("repo", type=Path)
    remove.add_argument("name")

    listing = sub.add_parser("list", help="list worktrees")
    listing.add_argument("repo", type=Path)
    listing.add_argument("--json", action="store_true", dest="as_json")

    branches = sub.add_parser("branches", help="list local and remote branches")
    branches.add_argument("repo", type=Path)

    sync = sub.add_parser("sync", help="update __main__ and reinstall its dependencies")
    sync.add_argument("repo", type=Path)

    config = sub.add_parser("config", help="show or change worktree file propagation")
    config.add_argument("repo", type=Path)
    config.add_argument("--symlink", nargs="*", help="paths to symlink from __main__")
    config.add_argument("--copy", nargs="*", help="paths to copy from __main__")
    config.add_argument("--upstream-remote")
    config.add_argument("--base-branch")

    remotes = sub.add_parser("remotes", help="list, add or remove remotes")
    remotes.add_argument("repo", type=Path)
    remotes.add_argument("--add", nargs=2, metavar=("NAME", "URL"))
    remotes.add_argument("--remove", metavar="NAME")

    return parser


def _cmd_config(pipeline: WorktreePipeline, args: argparse.Namespace) -> int:
    repo_root = args.repo.resolve()
    wt_config = pipeline.config_store.get(repo_root)
    changed = False
    if args.symlink is not None:
        wt_config.symlink = args.symlink
        changed = True
    if args.copy is not None:
        wt_config.copy = args.copy
        changed = True
    if args.upstream_remote:
        wt_config.upstream_remote = args.upstream_remote
        changed = True
    if args.base_branch:
        wt_config.base_branch = args.base_branch
        changed = True
    if changed:
        pipeline.config_store.set(repo_root, wt_config)
    print(json.dumps(wt_config.to_dict(), indent=2))
    return 0


def _cmd_remotes(pipeline: WorktreePipeline, args: argparse.Namespace) -> int:
    repo_root = args.repo.resolve()
    if args.add:
        pipeline.branch_manager.add_remote(repo_root, args.add[0], args.add[1])
    if args.remove:
        pipeline.branch_manager.remove_remote(repo_root, args.remove)
    for remote in pipeline.branch_manager.list_remotes(repo_root):
        print(f"{remote.name}\t{remote.url}")
    return 0


def run(args: argparse.Namespace, pipeline: WorktreePipeline) -> int:
    """Dispatch a parsed command; returns the process exit code."""
    sink = line_sink(_print_line)

    if args.command == "clone":
        return 0 if pipeline.clone_repository(args.url, args.target, sink) else 1
    if args.command == "add":
        return 0 if pipeline.add_worktree(args.repo.resolve(), args.name, sink, args.branch) else 1
    if args.command == "sync":
        return 0 if pipeline.sync_main(args.repo.resolve(), sink) else 1

    try:
        if args.command == "remove":
            pipeline.remove_worktree(args.repo.resolve(), args.name)
            print(f"Removed {args.name}")
        elif args.command == "list":
            worktrees = pipeline.worktree_manager.list(args.repo.resolve())
            if args.as_json:
                print(json.dumps([w.to_dict() for w in worktrees], indent=2))
            else:
                for w in worktrees:
                    if w.bare:
                        continue
                    label = w.branch_name or "(detached)"
                    print(f"{w.name}\t{label}\t{(w.head or '')[:8]}\t{w.commit_message or ''}")
        elif args.command == "branches":
            for branch in pipeline.branch_manager.list_branches(args.repo.resolve()):
                print(branch)
        elif args.command == "config":
            return _cmd_config(pipeline, args)
        elif args.command == "remotes":
            return _cmd_remotes(pipeline, args)
    except BareBonesError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = get_barebones_config()
    setup_logging(verbose=args.verbose, debug=args.debug, log_file=config.log_path)

    pipeline = WorktreePipeline(config=config)
    try:
        return run(args, pipeline)
    finally:
        pipeline.shutdown()


if __name__ == "__main__":
    sys.exit(main())
