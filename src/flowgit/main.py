"""Main entry point for flowgit."""

import argparse
import logging
import subprocess
import sys
from argparse import ArgumentParser
from typing import List, Optional, Set

import argcomplete  # type: ignore

from flowgit.commands.branch import branch_name_completer, cmd_checkout, cmd_create
from flowgit.commands.commit import cmd_modify
from flowgit.commands.context import make_context
from flowgit.commands.navigation import cmd_branch_down, cmd_branch_up, cmd_com, cmd_log
from flowgit.commands.stack import cmd_restack, cmd_submit, cmd_sync
from flowgit.commands.todo import cmd_todo
from flowgit.utils.config import get_config
from flowgit.utils.logging import ExitException, _LOGGING_FORMAT, error, set_color_mode
from flowgit.utils.types import LOGLEVELS


def make_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="flowgit",
        description="Stacked branches on top of git and gh. Unknown commands are passed to git.",
    )
    parser.add_argument(
        "--log-level", default="info", choices=LOGLEVELS.keys(),
        help="Set the log level",
    )
    parser.add_argument(
        "--color", default="auto", choices=["always", "auto", "never"],
        help="Colorize output and error",
    )

    subparsers = parser.add_subparsers(required=True, dest="command")

    create_parser = subparsers.add_parser("create", help="Create a new branch from the current changes")
    create_parser.add_argument("-m", help="Commit message (prompted for if missing)", dest="message")
    create_parser.set_defaults(func=cmd_create)

    modify_parser = subparsers.add_parser("modify", help="Amend the current commit with new changes")
    modify_parser.set_defaults(func=cmd_modify)

    checkout_parser = subparsers.add_parser("checkout", aliases=["co"], help="Checkout a branch")
    checkout_parser.add_argument("name", help="Branch name", nargs="?").completer = branch_name_completer
    checkout_parser.set_defaults(func=cmd_checkout)

    com_parser = subparsers.add_parser("com", help="Checkout trunk and pull it")
    com_parser.set_defaults(func=cmd_com)

    up_parser = subparsers.add_parser("up", help="Go up in the current stack (away from trunk)")
    up_parser.set_defaults(func=cmd_branch_up)
    down_parser = subparsers.add_parser("down", help="Go down in the current stack (towards trunk)")
    down_parser.set_defaults(func=cmd_branch_down)

    log_parser = subparsers.add_parser("log", help="Show tracked stacks as a tree")
    log_parser.add_argument("--pr", action="store_true", help="Show PR state (slow)")
    log_parser.set_defaults(func=cmd_log)

    restack_parser = subparsers.add_parser("restack", help="Rebase the current branch onto its parent")
    restack_parser.add_argument(
        "target", nargs="?", help="New parent for the current branch",
    ).completer = branch_name_completer
    restack_parser.add_argument(
        "--children", dest="children", action="store_true", default=None,
        help="Rebase children too, without asking",
    )
    restack_parser.add_argument(
        "--no-children", dest="children", action="store_false",
        help="Only rebase the current branch",
    )
    restack_parser.set_defaults(func=cmd_restack)

    sync_parser = subparsers.add_parser("sync", help="Update trunk and clean up merged branches")
    sync_parser.set_defaults(func=cmd_sync)

    submit_parser = subparsers.add_parser("submit", help="Push the stack and create or update PRs")
    submit_parser.add_argument(
        "--current", action="store_true", help="Only submit the current branch, not the full stack",
    )
    submit_parser.set_defaults(func=cmd_submit)

    todo_parser = subparsers.add_parser("todo", help="Show PRs and branches that need attention")
    todo_parser.set_defaults(func=cmd_todo)

    return parser


def _known_commands(parser: ArgumentParser) -> Set[str]:
    for action in parser._actions:
        if isinstance(action, argparse._SubParsersAction):
            return set(action.choices)
    return set()


def forward_to_git(argv: List[str]) -> int:
    """Run git with the given arguments and hand back its exit status."""
    logging.debug("Forwarding to git: %s", argv)
    return subprocess.run(["git", *argv]).returncode


def _first_positional(argv: List[str]) -> Optional[str]:
    skip_next = False
    for a in argv:
        if skip_next:
            skip_next = False
            continue
        if a in ("--log-level", "--color"):
            skip_next = True
            continue
        if a.startswith("-"):
            continue
        return a
    return None


def main(argv: Optional[List[str]] = None):
    """Main entry point for flowgit."""
    logging.basicConfig(format=_LOGGING_FORMAT, level=logging.INFO)
    if argv is None:
        argv = sys.argv[1:]
    try:
        parser = make_parser()
        argcomplete.autocomplete(parser)

        verb = _first_positional(argv)
        if verb is not None and verb not in _known_commands(parser):
            # flowgit options before the verb are not git options
            sys.exit(forward_to_git(argv[argv.index(verb):]))

        args = parser.parse_args(argv)
        logging.basicConfig(format=_LOGGING_FORMAT, level=LOGLEVELS[args.log_level], force=True)
        set_color_mode(args.color)

        ctx = make_context(get_config())
        args.func(ctx, args)
    except ExitException as e:
        error("{}", e.args[0])
        sys.exit(1)
    except KeyboardInterrupt:
        error("Aborted")
        sys.exit(130)
