"""Command-line interface for dbmill."""

import argparse
import getpass
import logging
import platform
import sys
from pathlib import Path
from typing import Optional

from dbmill import __version__
from dbmill.config import Config
from dbmill.exceptions import ConfigError, DbmillError
from dbmill.scripting.filter import ObjectFilter
from dbmill.scripting.layout import FolderWriter, ScriptsFolderLayout
from dbmill.scripting.pipeline import ScriptsFolder
from dbmill.sqlserver.connection import (
    credentials,
    odbc_connection_string,
    with_credentials,
)

LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
}


def parse_log_level(name: str) -> int:
    """Map a log level name to a logging level."""
    level = LOG_LEVELS.get(name.strip().lower())
    if level is None:
        raise ConfigError(
            f"Unknown log level {name!r} (expected one of: {', '.join(LOG_LEVELS)})"
        )
    return level


def configure_logging(level: int, log_file: Optional[str] = None) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=level, format="%(message)s", handlers=handlers, force=True
    )


def resolve_connection(
    connection: str, username: Optional[str], password: Optional[str]
) -> str:
    """Apply --username/--password to the URL, prompting for what is missing."""
    url_user, url_password = credentials(connection)
    user = username if username else url_user
    pwd = password if password else url_password

    if sys.stdin.isatty():
        if not user.strip():
            user = input("Username: ")
        if user.strip() and not pwd.strip():
            pwd = getpass.getpass(f"Password for {user}: ")

    if (user, pwd) == (url_user, url_password):
        return connection
    return with_credentials(connection, user, pwd)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    parser = argparse.ArgumentParser(
        prog="dbmill",
        description="SQL Server schema scripting tool",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sf_parser = subparsers.add_parser(
        "scriptsfolder", help="Create scripts based on the schema"
    )
    sf_parser.add_argument("--db", "-D", help="Connection URL (sqlserver://...)")
    sf_parser.add_argument("--path", "-d", help="Scripts folder (default: .)")
    sf_parser.add_argument(
        "--dir-struct", "-S", type=Path, help="YAML file describing the folder layout"
    )
    sf_parser.add_argument("--log", "-l", help="Log file")
    sf_parser.add_argument(
        "--log-level",
        "-L",
        help="trace, debug, info, warning, error, fatal or panic (default: info)",
    )
    sf_parser.add_argument(
        "--filter", "-f", action="append", default=[], help="Include pattern"
    )
    sf_parser.add_argument(
        "--filter-path", "-F", type=Path, help="File of include patterns"
    )
    sf_parser.add_argument(
        "--exclude", "-e", action="append", default=[], help="Exclude pattern"
    )
    sf_parser.add_argument(
        "--exclude-path", "-E", type=Path, help="File of exclude patterns"
    )
    sf_parser.add_argument("--username", "-U", help="Replaces the URL user")
    sf_parser.add_argument("--password", "-P", help="Replaces the URL password")
    sf_parser.add_argument(
        "--skip-permissions",
        action="store_true",
        help="Do not script permissions",
    )
    sf_parser.add_argument("--timeout", type=int, help="Query timeout in seconds")
    sf_parser.add_argument("--profile", help="Profile in ~/.dbmill.cfg")

    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.command == "scriptsfolder":
        return cmd_scriptsfolder(args)
    elif args.command == "version":
        return cmd_version(args)
    else:
        print(f"Command '{args.command}' not yet implemented", file=sys.stderr)
        return 1


def cmd_scriptsfolder(args: argparse.Namespace) -> int:
    """Script every selected object into the scripts folder."""
    try:
        config = Config.from_env(
            connection=args.db,
            path=args.path,
            layout_path=str(args.dir_struct) if args.dir_struct else None,
            include=args.filter,
            exclude=args.exclude,
            include_path=str(args.filter_path) if args.filter_path else None,
            exclude_path=str(args.exclude_path) if args.exclude_path else None,
            log_file=args.log,
            log_level=args.log_level,
            skip_permissions=True if args.skip_permissions else None,
            timeout=args.timeout,
            profile=args.profile,
        )
        configure_logging(parse_log_level(config.log_level), config.log_file)
        config.validate_for_db_ops()

        if config.layout_path:
            layout = ScriptsFolderLayout.load(config.layout_path)
        else:
            layout = ScriptsFolderLayout.default()

        include, exclude = config.patterns()
        object_filter = ObjectFilter(
            include=include, exclude=exclude, kinds=layout.kinds
        )

        connection = resolve_connection(config.connection, args.username, args.password)
        connection_string = odbc_connection_string(connection, config.driver)

        from dbmill.sqlserver.client import SqlServerClient

        with SqlServerClient(connection_string, timeout=config.timeout) as client:
            pipeline = ScriptsFolder(
                client,
                FolderWriter(config.path, layout),
                object_filter=object_filter,
                skip_permissions=config.skip_permissions,
                queue_size=config.queue_size,
            )
            summary = pipeline.run()

        print(f"Scripted {summary.emitted} objects into {config.path}")
        if summary.failed or summary.emit_failed:
            print(
                f"{summary.failed + summary.emit_failed} objects could not be scripted, "
                "see the log for details",
                file=sys.stderr,
            )
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except DbmillError as e:
        print(f"Scripting error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Run error: {e}", file=sys.stderr)
        return 1


def cmd_version(args: argparse.Namespace) -> int:
    """Show version information."""
    print(f"dbmill {__version__}")
    print(f"Python {platform.python_version()} ({platform.system()} {platform.machine()})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
