#!/usr/bin/env python3

import os
import sys
import json
import getpass
import argparse
import logging.config
from typing import List, Optional
from collections import OrderedDict

import uvicorn
import alembic.command
import alembic.config
import sqlalchemy.exc

from crud_core import settings as _settings
from crud_core.api import auth
from crud_core.api.api import create_app
from crud_core.persistence import database, models
from crud_core.services import accounts


ALEMBIC_SCRIPT_LOCATION = os.path.join(os.path.dirname(os.path.abspath(database.__file__)), "alembic")


def get_parser(program: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=program)

    commands = parser.add_subparsers(
        description="Available sub-commands: init, users*, run, systemd, auto",
        dest="command",
        required=True,
        metavar="<command>",
        help="the sub-command to be executed (some have their own subcommands, too)"
    )

    parser_init = commands.add_parser(
        "init",
        description="Initialize the project by creating the config file and migrating the database"
    )

    parser_users = commands.add_parser(
        "users",
        description="Manage user accounts"
    )
    user_command = parser_users.add_subparsers(
        description="Available actions: show, add, role, lock",
        dest="action",
        metavar="<action>",
        required=True,
        help="action to perform for users"
    )
    parser_users_show = user_command.add_parser(
        "show",
        description="Show a list of all user accounts"
    )
    parser_users_add = user_command.add_parser(
        "add",
        description="Add a new user account with a password"
    )
    parser_users_role = user_command.add_parser(
        "role",
        description="Grant or revoke the administrator role of a user account"
    )
    parser_users_lock = user_command.add_parser(
        "lock",
        description="Lock or unlock a user account (locking signs out all sessions)"
    )

    parser_run = commands.add_parser(
        "run",
        description="Run 'uvicorn' ASGI server to serve the CRUD core REST API"
    )

    parser_systemd = commands.add_parser(
        "systemd",
        description="Create a systemd unit file to run the CRUD core REST API as system service"
    )

    parser_init.add_argument(
        "--database",
        type=str,
        metavar="url",
        help="Database connection URL including scheme and auth"
    )
    parser_init.add_argument(
        "--no-migrations",
        action="store_true",
        help="Do not apply migrations automatically (not recommended)"
    )

    parser_users_show.add_argument(
        "--json",
        action="store_true",
        help="Print the result in JSON format instead of human-readable text"
    )
    parser_users_show.add_argument(
        "--indent",
        type=int,
        metavar="n",
        help="(JSON-only) Indent the JSON response with n spaces (default: none)"
    )

    parser_users_add.add_argument(
        "--email",
        type=str,
        metavar="address",
        required=True,
        help="Email address of the new user account, used as login name"
    )
    parser_users_add.add_argument(
        "--password",
        type=str,
        metavar="passwd",
        help="Password for the new user account (will be asked interactively if omitted)"
    )
    parser_users_add.add_argument(
        "--admin",
        action="store_true",
        help="Grant the administrator role to the new user account"
    )

    for p in (parser_users_role, parser_users_lock):
        p.add_argument(
            "email",
            metavar="address",
            help="Email address of the user account"
        )
    parser_users_role.add_argument(
        "role",
        choices=("user", "admin"),
        help="Role of the user account (choices: 'user', 'admin')"
    )
    parser_users_lock.add_argument(
        "--unlock",
        action="store_true",
        help="Unlock the user account instead of locking it"
    )

    parser_run.add_argument(
        "--host",
        type=str,
        metavar="host",
        help="Bind TCP socket to this host (overwrite config)"
    )
    parser_run.add_argument(
        "--port",
        type=int,
        metavar="port",
        help="Bind TCP socket to this port (overwrite config)"
    )
    parser_run.add_argument(
        "--config",
        type=str,
        metavar="config",
        default="config.json",
        help="Overwrite the config file (defaults to 'config.json')"
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (don't use this in production)"
    )
    parser_run.add_argument(
        "--debug-sql",
        action="store_true",
        help="Enable echoing of database actions (overwrites config)"
    )
    parser_run.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload"
    )
    parser_run.add_argument(
        "--workers",
        type=int,
        default=None,
        metavar="n",
        help="Number of worker processes (not valid with --reload)",
    )
    parser_run.add_argument(
        "--no-access-log",
        action="store_true",
        help="Disable access logs"
    )
    parser_run.add_argument(
        "--root-path",
        type=str,
        default="",
        metavar="p",
        help="Sub-mount the application below the given path"
    )

    parser_systemd.add_argument(
        "--force",
        action="store_true",
        help="Allow overwriting existing files"
    )
    parser_systemd.add_argument(
        "--path",
        type=str,
        default=os.path.join(os.path.abspath("."), "crud_core.service"),
        metavar="p",
        help="Path to the newly created systemd file"
    )

    parser_auto = commands.add_parser(
        "auto",
        description="Deploy and start the server in 'auto mode' using environment variables for first configuration"
    )
    parser_auto.add_argument(
        "--host",
        type=str,
        metavar="host",
        help="Bind TCP socket to this host (overwrite config and environment)"
    )
    parser_auto.add_argument(
        "--port",
        type=int,
        metavar="port",
        help="Bind TCP socket to this port (overwrite config and environment)"
    )
    parser_auto.add_argument(
        "--debug-sql",
        action="store_true",
        help="Enable echoing of database actions (overwrite config and environment)"
    )
    parser_auto.add_argument(
        "--root-path",
        type=str,
        default="",
        metavar="p",
        help="Sub-mount the application below the given path"
    )

    return parser


def upgrade_database(connection: str):
    """
    Apply all outstanding database migrations using the alembic scripts of the package
    """

    config = alembic.config.Config()
    config.set_main_option("script_location", ALEMBIC_SCRIPT_LOCATION)
    config.set_main_option("sqlalchemy.url", connection.replace("%", "%%"))
    alembic.command.upgrade(config, "head")


def handle_systemd(args: argparse.Namespace) -> int:
    python_executable = sys.executable
    if sys.executable is None or sys.executable == "":
        python_executable = "python3"
        print(
            "Revise the 'ExecStart' parameter, since the Python "
            "interpreter path could not be determined reliably.",
            file=sys.stderr
        )

    content = f"""[Unit]
Description=CRUD core REST API server
After=network-online.target
Wants=network-online.target

[Service]
Type=simple
ExecStart={python_executable} -m crud_core run
User={getpass.getuser()}
WorkingDirectory={os.path.abspath(".")}
Restart=always
SyslogIdentifier=crud_core

[Install]
WantedBy=multi-user.target
"""

    if os.path.exists(args.path) and not args.force:
        print(f"File {args.path!r} already exists. Aborting!", file=sys.stderr)
        return 1

    with open(args.path, "w") as f:
        f.write(content)

    print(
        f"Successfully created the new file {args.path!r}. Now, create a "
        f"symlink from /lib/systemd/system/ to that file. Then use 'systemctl "
        f"daemon-reload' and enable your new service. Check that it works afterwards."
    )

    return 0


def run_server(args: argparse.Namespace) -> int:
    if args.debug:
        print("Do not start the server this way during production!", file=sys.stderr)

    _settings.CONFIG_PATHS.insert(0, args.config)
    try:
        settings = _settings.Settings()
    except ValueError:
        print("Ensure that the configuration file is valid. Please correct any errors.", file=sys.stderr)
        raise

    if args.debug:
        settings.logging.root["level"] = "DEBUG"
        for handler in settings.logging.handlers:
            settings.logging.handlers[handler]["level"] = "DEBUG"
    if args.debug_sql:
        settings.database.debug_sql = args.debug_sql

    port = args.port or settings.server.port
    host = args.host or settings.server.host

    app = create_app(settings=settings)

    logging.getLogger("crud_core").info(f"Server running at host {host} port {port}")
    uvicorn.run(
        "crud_core.api.api:api.app" if args.reload else app,
        port=port,
        host=host,
        reload=args.reload,
        workers=args.workers,
        log_level="debug" if args.debug else "info",
        log_config=settings.logging.model_dump(),
        access_log=not args.no_access_log,
        proxy_headers=True,
        root_path=args.root_path
    )
    return 0


def _setup_config(db: Optional[str] = None, interactive: bool = False) -> _settings.Settings:
    if any(os.path.exists(path) for path in _settings.CONFIG_PATHS):
        if interactive:
            print(
                "A config file has been found and will be used. If you want a fresh installation, "
                "you should remove the config file and clear the database, then run this command again."
            )
        return _settings.Settings()

    if interactive:
        print("No settings file found. A basic config will be created now.")
    conf = _settings.get_default_core_config(db)
    if not db and interactive:
        print(
            "\nEnter the full database connection string below. It's required to make the "
            "project persistent. It uses an in-memory sqlite3 database by default (press "
            "Enter to use that default). A persistent database is highly recommended."
        )
        conf.database.connection = input("> ") or conf.database.connection
    _settings.store_configuration(conf)
    return _settings.Settings()


def init_project(args: argparse.Namespace, no_hint: bool = False) -> int:
    settings = _setup_config(args.database or _settings.get_db_from_env(), not no_hint)
    if not args.no_migrations:
        upgrade_database(settings.database.connection)
    database.init(settings.database.connection, settings.database.debug_sql, create_all=False)

    with database.get_new_session() as session:
        try:
            users = session.query(models.User).count()
        except sqlalchemy.exc.DatabaseError:
            print(
                "No table 'users' found in the database. Please initialize the database first. "
                "Perform the necessary database migrations using the 'alembic upgrade head' command.",
                file=sys.stderr
            )
            return 1

    if users == 0 and not no_hint:
        print(
            "\nThere's no user account yet. Use the 'users add --admin' command to "
            "create the first administrator account, which is able to manage roles."
        )
    if not no_hint:
        print("Done.")
    return 0


def print_table(objs: List[dict], keys: Optional[List[str]] = None):
    info = OrderedDict()
    if keys:
        for k in keys:
            info[k] = len(k)
    for obj in objs:
        for key in obj:
            if keys and key not in keys:
                continue
            if key not in info:
                info[key] = len(key)
            info[key] = max(len(str(obj.get(key))), info.get(key))
    print(" | ".join([f"{k:<{info[k]}}" for k in info]))
    print("-+-".join(["-" * info[k] for k in info]))
    for obj in objs:
        print(" | ".join([f"{obj[k]!s:<{info[k]}}" for k in info]))


def _init_from_config() -> _settings.Settings:
    config = _settings.Settings()
    database.init(config.database.connection, config.database.debug_sql, create_all=False)
    auth.init(config)
    return config


def show_users(args: argparse.Namespace) -> int:
    _init_from_config()
    with database.get_new_session() as session:
        users = [user.schema.model_dump(mode="json") for user in session.query(models.User).all()]

    if args.json:
        print(json.dumps(users, indent=args.indent))
        return 0
    for user in users:
        user["roles"] = ",".join(user["roles"])
    print_table(users, ["id", "email", "first_name", "last_name", "roles", "locked", "created_at"])
    return 0


def add_user(args: argparse.Namespace) -> int:
    if not args.email:
        print("Empty email addresses are not allowed.", file=sys.stderr)
        return 1

    _init_from_config()
    passwd = args.password or getpass.getpass()
    if not passwd or len(passwd) < 8:
        print("A password of at least 8 characters is mandatory. No user account created!", file=sys.stderr)
        return 1

    roles = [auth.USER_ROLE, auth.ADMIN_ROLE] if args.admin else [auth.USER_ROLE]
    with database.get_new_session() as session:
        if accounts.find_user(session, args.email) is not None:
            print(f"A user account with the email address {args.email!r} already exists.", file=sys.stderr)
            return 1
        user = accounts.create_user(session, args.email, passwd, roles=roles)
        print(f"Successfully created new user account {user.email!r} with roles {', '.join(user.roles)}.")
    return 0


def set_user_role(args: argparse.Namespace) -> int:
    _init_from_config()
    with database.get_new_session() as session:
        user = accounts.find_user(session, args.email)
        if user is None:
            print(f"No user account with the email address {args.email!r} has been found!", file=sys.stderr)
            return 1
        roles = set(user.roles or [])
        roles.add(auth.USER_ROLE)
        if args.role == "admin":
            roles.add(auth.ADMIN_ROLE)
        else:
            roles.discard(auth.ADMIN_ROLE)
        accounts.set_roles(session, user, roles)
        print(f"Successfully updated the roles of {user.email!r} to {', '.join(user.roles)}!")
    return 0


def lock_user(args: argparse.Namespace) -> int:
    _init_from_config()
    with database.get_new_session() as session:
        user = accounts.find_user(session, args.email)
        if user is None:
            print(f"No user account with the email address {args.email!r} has been found!", file=sys.stderr)
            return 1
        accounts.set_locked(session, user, not args.unlock)
        print(f"Successfully {'unlocked' if args.unlock else 'locked'} the user account {user.email!r}!")
    return 0


def handle_users(args: argparse.Namespace) -> int:
    return {
        "show": show_users,
        "add": add_user,
        "role": set_user_role,
        "lock": lock_user
    }[args.action](args)


def run_in_auto_mode(args: argparse.Namespace) -> int:
    logger = logging.getLogger("auto")

    # Setup the configuration
    db = _settings.get_db_from_env()
    if db is None and not any(os.path.exists(path) for path in _settings.CONFIG_PATHS):
        print(
            "Unable to proceed in auto mode. One of the following environment variables "
            "must be set correctly: 'DATABASE__CONNECTION', 'DATABASE_CONNECTION'!",
            file=sys.stderr
        )
        return 1
    conf = _setup_config(db, False)
    db = db or conf.database.connection

    # Configure logging as early as feasible
    logging.config.dictConfig(conf.logging.model_dump())

    # Perform database migrations after the config file has been loaded successfully
    upgrade_database(db)

    # Create the first administrator if no user account exists yet
    database.init(db, conf.database.debug_sql, create_all=False)
    auth.init(conf)
    with database.get_new_session() as session:
        users = session.query(models.User).count()
        if users == 0 and os.environ.get("SKIP_INITIALIZATION", None) is None:
            initial_email = os.environ.get("INITIAL_ADMIN_EMAIL", None)
            initial_password = os.environ.get("INITIAL_ADMIN_PASSWORD", None)
            if initial_email is None or initial_password is None:
                logger.warning(
                    "You need to set the environment variables 'INITIAL_ADMIN_EMAIL' and "
                    "'INITIAL_ADMIN_PASSWORD' in auto mode to create the first administrator account."
                )
            else:
                accounts.create_user(session, initial_email, initial_password, roles=[auth.USER_ROLE, auth.ADMIN_ROLE])
                logger.info(f"Created the initial administrator account {initial_email!r}")

    # Run the API server
    settings = _settings.Settings()
    if args.debug_sql:
        settings.database.debug_sql = args.debug_sql
    port = args.port or settings.server.port
    host = args.host or settings.server.host
    app = create_app(settings=settings)
    logging.getLogger("crud_core").info(f"Server running at host {host} port {port}")
    uvicorn.run(
        app,
        port=port,
        host=host,
        reload=False,
        workers=1,
        log_config=settings.logging.model_dump(),
        proxy_headers=True,
        root_path=args.root_path
    )
    return 0


if __name__ == '__main__':
    program_name = sys.argv[0] if not sys.argv[0].endswith("__main__.py") else "crud_core"
    namespace = get_parser(program_name).parse_args(sys.argv[1:])

    command_functions = {
        "run": run_server,
        "init": init_project,
        "users": handle_users,
        "auto": run_in_auto_mode,
        "systemd": handle_systemd
    }
    exit(command_functions[namespace.command](namespace))
