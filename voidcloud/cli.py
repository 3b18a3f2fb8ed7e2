"""Command line entry point: log in and deploy games."""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Sequence

from .account import PARAM_JWT, LoginCommand, LoginError, login
from .api import Client
from .pp import to_json
from .share import DeployCommand, DeployEntry, DeployError, deploy
from .system import default_keyring, default_runtime

COMMAND_NAME = "void-cloud"
COMMAND_DESCRIPTION = "access to the Void Cloud Platform"
COMMAND_VERSION = "0.0.1"
PRODUCTION_URL = "https://play.void.dev/"
LOGIN_COMMAND_NAME = "login"
LOGIN_COMMAND_DESCRIPTION = "tell us who you are"
DEPLOY_COMMAND_NAME = "deploy"
DEPLOY_COMMAND_DESCRIPTION = "share your game with others"


class _UsageError(Exception):
    pass


def build_api_client(server: str, token: str) -> Client:
    """Create an API client, taking the token from the keyring when none is given."""
    if not token:
        token = default_keyring(server).get(PARAM_JWT) or ""
    return Client(server, token)


def _add_server_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--server",
        metavar="URL",
        default=os.environ.get("SERVER", PRODUCTION_URL),
        help="server endpoint URL",
    )


def _add_flag(parser: argparse.ArgumentParser, name: str, env: str, help_text: str) -> None:
    parser.add_argument(f"--{name}", default=os.environ.get(env, ""), help=help_text)


def _run_login(args: argparse.Namespace) -> None:
    server = args.server
    print("logging in to", server, "...")
    user = login(
        LoginCommand(
            server=server,
            runtime=default_runtime(),
            keyring=default_keyring(server),
        )
    )
    print("You are logged in")
    print(to_json(user))


def _report_started(
    deploy_id: int, manifest: list[DeployEntry], incremental: list[DeployEntry]
) -> None:
    total, count = len(manifest), len(incremental)
    if total == count:
        print(f"deploying ALL {total} files")
    else:
        print(f"deploying {count} / {total} files")


def _report_upload(deploy_id: int, path: str) -> None:
    print(f"deploying {path}")


def _run_deploy(args: argparse.Namespace) -> None:
    positional = args.args
    path = positional[0] if positional else ""
    label = positional[1] if len(positional) > 1 else ""
    if not path:
        raise _UsageError("missing required argument: PATH")

    with build_api_client(args.server, args.token) as api:
        print(f"Deploying {path} ...")
        result = deploy(
            DeployCommand(
                api=api,
                org=args.org,
                game=args.game,
                label=label,
                path=path,
                on_started=_report_started,
                on_upload=_report_upload,
            )
        )
    print(f"Deployed to {result.url}")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=COMMAND_NAME, description=COMMAND_DESCRIPTION)
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"{COMMAND_NAME} version {COMMAND_VERSION}",
    )
    parser.set_defaults(action=None)
    commands = parser.add_subparsers(metavar="command")

    login_parser = commands.add_parser(
        LOGIN_COMMAND_NAME,
        help=LOGIN_COMMAND_DESCRIPTION,
        description=LOGIN_COMMAND_DESCRIPTION,
    )
    _add_server_flag(login_parser)
    login_parser.set_defaults(action=_run_login)

    deploy_parser = commands.add_parser(
        DEPLOY_COMMAND_NAME,
        help=DEPLOY_COMMAND_DESCRIPTION,
        description=DEPLOY_COMMAND_DESCRIPTION,
    )
    _add_server_flag(deploy_parser)
    _add_flag(deploy_parser, "org", "ORG", "organization ID")
    _add_flag(deploy_parser, "game", "GAME", "game ID")
    _add_flag(deploy_parser, "token", "TOKEN", "personal access TOKEN")
    deploy_parser.add_argument("args", nargs="*", metavar="PATH [LABEL]")
    deploy_parser.set_defaults(action=_run_deploy)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line and return its exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.action is None:
        parser.print_help()
        return 0
    try:
        args.action(args)
    except (_UsageError, LoginError, DeployError, OSError, ValueError) as err:
        print(err, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())