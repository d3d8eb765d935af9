"""
Configuration for docker-credential-env.

All settings come from the process environment. The environment is injected as a
read-only mapping so tests never have to mutate os.environ.
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

ENV_PREFIX = "DOCKER"
ENV_USERNAME_SUFFIX = "USR"
ENV_PASSWORD_SUFFIX = "PSW"
ENV_SEPARATOR = "_"
ENV_IGNORE_LOGIN = "IGNORE_DOCKER_LOGIN"
ENV_DEBUG_MODE = "DOCKER_CREDENTIAL_ENV_DEBUG"
ENV_DOCKER_CONFIG = "DOCKER_CONFIG"

ENV_AWS_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
ENV_AWS_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
ENV_AWS_SESSION_TOKEN = "AWS_SESSION_TOKEN"
ENV_AWS_ROLE_ARN = "AWS_ROLE_ARN"
ENV_AWS_PROFILE = "AWS_PROFILE"

ENV_GITHUB_TOKEN = "GITHUB_TOKEN"
GHCR_USERNAME = "x-access-token"

# strconv.ParseBool compatible spellings
_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}


class ConfigValidationError(Exception):
    """Raised when configuration validation fails"""


def parse_bool(value: Optional[str]) -> Optional[bool]:
    """Parse a boolean flag value, returning None when it is not a recognised spelling."""
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return None


class ConfigManager:
    """Manages configuration for the credential helper"""

    def __init__(self, env: Optional[Mapping[str, str]] = None):
        """Initialize ConfigManager

        Args:
            env: Environment mapping to read from (defaults to os.environ)
        """
        self.env = os.environ if env is None else env
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Fixed defaults of the helper"""
        return {
            "env": {
                "prefix": ENV_PREFIX,
                "username_suffix": ENV_USERNAME_SUFFIX,
                "password_suffix": ENV_PASSWORD_SUFFIX,
            },
            "retry": {
                "max_attempts": 10,
                "initial_delay": 0.2,
                "max_delay": 5.0,
                "exponential_base": 2.0,
                "jitter": True,
                "timeout": 30.0,  # End-to-end bound on the ECR token exchange
                "connect_timeout": 5.0,
                "read_timeout": 10.0,
            },
            "ghcr": {"token_variable": ENV_GITHUB_TOKEN, "username": GHCR_USERNAME},
        }

    def get_env_prefix(self) -> str:
        return self.config["env"]["prefix"]

    def get_username_suffix(self) -> str:
        return self.config["env"]["username_suffix"]

    def get_password_suffix(self) -> str:
        return self.config["env"]["password_suffix"]

    def is_debug(self) -> bool:
        """Debug mode, enabled by DOCKER_CREDENTIAL_ENV_DEBUG"""
        return parse_bool(self.env.get(ENV_DEBUG_MODE)) is True

    def should_ignore_login(self) -> bool:
        """Whether store/erase should silently succeed"""
        return self.env.get(ENV_IGNORE_LOGIN, "") != ""

    def get_retry_max_attempts(self) -> int:
        return self.config["retry"]["max_attempts"]

    def get_retry_initial_delay(self) -> float:
        return self.config["retry"]["initial_delay"]

    def get_retry_max_delay(self) -> float:
        return self.config["retry"]["max_delay"]

    def get_retry_exponential_base(self) -> float:
        return self.config["retry"]["exponential_base"]

    def get_retry_jitter(self) -> bool:
        return self.config["retry"]["jitter"]

    def get_timeout(self) -> float:
        return self.config["retry"]["timeout"]

    def get_connect_timeout(self) -> float:
        return self.config["retry"]["connect_timeout"]

    def get_read_timeout(self) -> float:
        return self.config["retry"]["read_timeout"]

    def get_github_token_variable(self) -> str:
        return self.config["ghcr"]["token_variable"]

    def get_ghcr_username(self) -> str:
        return self.config["ghcr"]["username"]

    def get_docker_config_path(self) -> Path:
        """Path of the Docker client config file ($DOCKER_CONFIG/config.json or ~/.docker/config.json)"""
        docker_config_dir = self.env.get(ENV_DOCKER_CONFIG)
        if docker_config_dir:
            return Path(docker_config_dir) / "config.json"
        return Path.home() / ".docker" / "config.json"

    def validate_config(self) -> None:
        """Validate environment-provided settings

        Raises:
            ConfigValidationError: If a flag has an unrecognised value
        """
        errors = []
        debug_value = self.env.get(ENV_DEBUG_MODE)
        if debug_value is not None and debug_value != "" and parse_bool(debug_value) is None:
            errors.append(
                f"{ENV_DEBUG_MODE} must be a boolean (1, t, true, 0, f, false), got {debug_value!r}"
            )

        docker_config_dir = self.env.get(ENV_DOCKER_CONFIG)
        if docker_config_dir and Path(docker_config_dir).exists() and not Path(docker_config_dir).is_dir():
            errors.append(f"{ENV_DOCKER_CONFIG} must point to a directory, got {docker_config_dir!r}")

        if errors:
            raise ConfigValidationError("; ".join(errors))
