"""Command-line interface for the users service."""

from __future__ import annotations
import argparse
import logging
import sys
from typing import Sequence

from usersapi.config import API_PREFIX, Settings, load_settings
from usersapi.errors import StorageError
from usersapi.storage import UserStore

logger = logging.getLogger("usersapi.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Users CRUD service utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Create the users data file if it does not exist")
    subparsers.add_parser("list", help="Print the stored users")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument(
        "--host",
        default=None,
        help="Bind address for the API (default: USERS_API_HOST or 0.0.0.0)",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the API (default: PORT or 3000)",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "list"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _initialise_store(settings: Settings) -> UserStore:
    store = UserStore(settings.data_file)
    store.initialize()
    logger.info("Users file ready at %s", settings.data_file)
    return store


def _serve(*, settings: Settings, store: UserStore, host: str | None, port: int | None) -> None:
    from usersapi.api import create_app
    import uvicorn

    bind_host = host or settings.host
    bind_port = port or settings.port

    app = create_app(settings=settings, store=store)
    logger.info("Starting users API on port %s", bind_port)
    logger.info("API available at http://localhost:%s%s/users", bind_port, API_PREFIX)
    uvicorn.run(
        app,
        host=bind_host,
        port=bind_port,
        log_level=settings.log_level.lower(),
    )


def _list_users(store: UserStore) -> None:
    users = store.load()
    if not users:
        print("No users are currently stored.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':<36}  {'Name':<28}  {'Email':<32}  Active")
    print("-" * 108)
    for user in users:
        name = f"{user.get('firstName', '')} {user.get('lastName', '')}".strip()
        active = "yes" if user.get("isActive") else "no"
        print(f"{user.get('id', ''):<36}  {name:<28}  {user.get('email', ''):<32}  {active}")


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    settings = load_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    try:
        store = _initialise_store(settings)
        if args.command == "serve":
            _serve(settings=settings, store=store, host=args.host, port=args.port)
        elif args.command == "list":
            _list_users(store)
        elif args.command == "init-db":
            print(f"Users file initialised at {settings.data_file} ({len(store.load())} record(s)).")
    except StorageError as exc:
        logger.error("%s", exc.detail or exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
