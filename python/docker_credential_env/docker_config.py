"""
Registration of the helper in the Docker client configuration.

``docker-credential-env setup`` edits $DOCKER_CONFIG/config.json (or
~/.docker/config.json):

    setup show        print whether "env" is the default store and which registries use it
    setup default     make "env" the default credential store (credsStore)
    setup REGISTRY    use "env" for a single registry (credHelpers)
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO

import yaml

from docker_credential_env.errors import SetupError

logger = logging.getLogger(__name__)

HELPER_NAME = "env"
USAGE = "Usage: docker-credential-env setup <show|default|registry-url>"


class _IndentedDumper(yaml.SafeDumper):
    """Indent block sequences under their key"""

    def increase_indent(self, flow=False, indentless=False):
        return super().increase_indent(flow, False)


class DockerConfigSetup:
    """Reads and updates the Docker client config file"""

    def __init__(self, command: str, config_path: Path, out: TextIO, registry: Optional[str] = None):
        self.command = command
        self.config_path = Path(config_path)
        self.out = out
        self.registry = registry

    def run(self) -> None:
        if self.command == "show":
            self.show()
        elif self.command == "default":
            self.configure(default_setup=True)
        else:
            self.configure(default_setup=False)

    def show(self) -> None:
        """Print the current helper registration as YAML"""
        config = self.load_config()

        env_registries: List[str] = sorted(
            registry
            for registry, helper in (config.get("credHelpers") or {}).items()
            if helper == HELPER_NAME
        )
        output = {
            "default": config.get("credsStore") == HELPER_NAME,
            "registries": env_registries,
        }
        self.out.write(yaml.dump(output, Dumper=_IndentedDumper, default_flow_style=False, sort_keys=False))

    def configure(self, default_setup: bool) -> None:
        """Register the helper as default store or for self.registry"""
        if not default_setup:
            self.validate_registry()

        self.ensure_docker_dir()
        config = self.load_config()

        if default_setup and config.get("credsStore") == HELPER_NAME:
            self.out.write(f"Default credential store is already configured to use \"{HELPER_NAME}\" credential helper\n")
            return
        if not default_setup and (config.get("credHelpers") or {}).get(self.registry) == HELPER_NAME:
            self.out.write(f"Registry \"{self.registry}\" is already configured to use \"{HELPER_NAME}\" credential helper\n")
            return

        if default_setup:
            config["credsStore"] = HELPER_NAME
        else:
            cred_helpers = config.get("credHelpers") or {}
            cred_helpers[self.registry] = HELPER_NAME
            config["credHelpers"] = cred_helpers

        self.save_config(config)

        if default_setup:
            self.out.write(f"Default credential store successfully configured to use \"{HELPER_NAME}\" credential helper\n")
        else:
            self.out.write(f"Registry \"{self.registry}\" successfully configured to use \"{HELPER_NAME}\" credential helper\n")

    def validate_registry(self) -> None:
        if not self.registry:
            raise SetupError("registry cannot be empty")
        if any(c in self.registry for c in " /\\"):
            raise SetupError(f"invalid registry: {self.registry!r}")

    def ensure_docker_dir(self) -> None:
        docker_dir = self.config_path.parent
        try:
            docker_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise SetupError(f"failed to create Docker directory {str(docker_dir)!r}: {e}") from e

    def load_config(self) -> Dict[str, Any]:
        """Load the config file; a missing file is an empty config"""
        try:
            with open(self.config_path, "r") as f:
                config = json.load(f)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            raise SetupError(f"failed to parse Docker config file {str(self.config_path)!r}: {e}") from e
        except OSError as e:
            raise SetupError(f"failed to read Docker config file {str(self.config_path)!r}: {e}") from e

        if not isinstance(config, dict):
            raise SetupError(f"failed to parse Docker config file {str(self.config_path)!r}: not a JSON object")
        return config

    def save_config(self, config: Dict[str, Any]) -> None:
        """Write the config file with owner-only permissions"""
        try:
            fd = os.open(self.config_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w") as f:
                json.dump(config, f, indent="\t")
        except OSError as e:
            raise SetupError(f"failed to write Docker config file {str(self.config_path)!r}: {e}") from e
        logger.debug(f"Wrote {self.config_path}")


def run_setup_command(args: List[str], out: TextIO, config_path: Path) -> None:
    """Entry point of the setup command

    Args:
        args: Arguments following "setup"
        out: Stream for user-facing output
        config_path: Docker config file to edit

    Raises:
        SetupError: On invalid arguments or config file errors
    """
    if not args:
        raise SetupError(f"missing argument\n{USAGE}")

    command = args[0]
    if command in ("show", "default"):
        if len(args) > 1:
            raise SetupError(f"\"{command}\" command does not accept additional arguments")
        setup = DockerConfigSetup(command, config_path, out)
    else:
        setup = DockerConfigSetup(command, config_path, out, registry=command)

    setup.run()
