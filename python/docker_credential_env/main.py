"""
docker-credential-env entry point.

Implements the docker credential helper protocol: the verb is the first
argument, the payload arrives on stdin and the response goes to stdout.

    echo registry.example.com | docker-credential-env get
"""

import argparse
import json
import logging
import sys
from typing import List, Mapping, Optional, TextIO

from docker_credential_env import __version__
from docker_credential_env.config_manager import ENV_IGNORE_LOGIN, ConfigManager, ConfigValidationError
from docker_credential_env.docker_config import USAGE, run_setup_command
from docker_credential_env.errors import CredentialHelperError, HostnameParseError, NotSupportedError
from docker_credential_env.logging_utils import get_logger, log_exception, setup_logging
from docker_credential_env.resolver import CredentialResolver

PROG = "docker-credential-env"

logger = get_logger(__name__)


def get_verb_descriptions():
    return {
        "get": "Print the credentials for the server URL read from stdin",
        "store": "Not supported (no-op when IGNORE_DOCKER_LOGIN is set)",
        "erase": "Not supported (no-op when IGNORE_DOCKER_LOGIN is set)",
        "list": "Not supported",
        "version": "Print the helper version",
        "setup": "Register this helper in the Docker client configuration",
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Docker credential helper reading registry credentials from environment variables",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="command")
    subparsers.required = True

    for verb, description in get_verb_descriptions().items():
        subparser = subparsers.add_parser(verb, help=description, description=description)
        if verb == "setup":
            subparser.usage = USAGE.replace("Usage: ", "")
            subparser.add_argument("setup_args", nargs="*", metavar="show|default|registry-url")

    return parser


def handle_get(resolver: CredentialResolver, stdin: TextIO, stdout: TextIO) -> None:
    server_url = stdin.read().strip()
    if not server_url:
        raise HostnameParseError("no credentials server URL")

    credential = resolver.get(server_url)
    if credential is None:
        payload = {}
    else:
        payload = {"ServerURL": server_url, "Username": credential.username, "Secret": credential.secret}

    json.dump(payload, stdout)
    stdout.write("\n")


def handle_store_or_erase(verb: str, config: ConfigManager, stdin: TextIO) -> None:
    # Drain the payload: the docker client expects it to be consumed
    stdin.read()
    if config.should_ignore_login():
        logger.debug(f"{verb}: ignored ({ENV_IGNORE_LOGIN} is set)")
        return
    raise NotSupportedError(verb)


def main(
    argv: Optional[List[str]] = None,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
    env: Optional[Mapping[str, str]] = None,
) -> int:
    """Run the helper and return the process exit code"""
    stdin = sys.stdin if stdin is None else stdin
    stdout = sys.stdout if stdout is None else stdout
    args = build_parser().parse_args(argv)

    config = ConfigManager(env)
    debug = config.is_debug()
    setup_logging(logging.INFO if debug else logging.WARNING)
    # botocore logs request/response bodies at DEBUG, which would include tokens
    logging.getLogger("botocore").setLevel(logging.WARNING)

    try:
        config.validate_config()
    except ConfigValidationError as e:
        logger.warning(f"Ignoring invalid configuration: {e}")

    try:
        if args.command == "get":
            handle_get(CredentialResolver(config=config), stdin, stdout)
        elif args.command in ("store", "erase"):
            handle_store_or_erase(args.command, config, stdin)
        elif args.command == "list":
            raise NotSupportedError("list")
        elif args.command == "version":
            stdout.write(f"{PROG} {__version__}\n")
        elif args.command == "setup":
            run_setup_command(args.setup_args, stdout, config.get_docker_config_path())
    except NotSupportedError as e:
        logger.warning(str(e))
        return 0
    except CredentialHelperError as e:
        if debug:
            log_exception(logger, f"{args.command} failed", e)
            logger.info(e.format_message())
        else:
            logger.error(str(e))
        return 1
    except Exception as e:
        log_exception(logger, f"{args.command} failed unexpectedly", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
