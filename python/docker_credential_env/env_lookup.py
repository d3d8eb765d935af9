"""
Tiered environment lookup of registry credentials.

For a hostname like ``repo.example-corp.com`` the helper probes, in order:

    DOCKER_repo_example_corp_com_USR / _PSW
    DOCKER_example_corp_com_USR / _PSW
    DOCKER_com_USR / _PSW
    DOCKER__USR / _PSW

and returns the first pair where both variables are set.
"""

import logging
from typing import List, Mapping, Optional, Tuple

from docker_credential_env.config_manager import (
    ENV_PASSWORD_SUFFIX,
    ENV_PREFIX,
    ENV_SEPARATOR,
    ENV_USERNAME_SUFFIX,
)
from docker_credential_env.credentials import Credential

logger = logging.getLogger(__name__)


def hostname_labels(hostname: str) -> List[str]:
    """Split a hostname into labels usable in environment variable names"""
    return hostname.replace("-", "_").split(".")


def env_variable_names(labels: List[str], offset: int, prefix: str = ENV_PREFIX) -> Tuple[str, str]:
    """Build the username/password variable names for labels[offset:].

    The offset is clamped into [0, len(labels)], so offset == len(labels) (or
    beyond) yields the catch-all ``DOCKER__USR`` / ``DOCKER__PSW`` pair.
    """
    offset = max(0, min(offset, len(labels)))

    env_hostname = ENV_SEPARATOR.join(labels[offset:])
    env_username = ENV_SEPARATOR.join([prefix, env_hostname, ENV_USERNAME_SUFFIX])
    env_password = ENV_SEPARATOR.join([prefix, env_hostname, ENV_PASSWORD_SUFFIX])
    return env_username, env_password


def candidate_variable_names(hostname: str, prefix: str = ENV_PREFIX) -> List[Tuple[str, str]]:
    """All N+1 candidate pairs for a hostname with N labels, most specific first"""
    labels = hostname_labels(hostname)
    return [env_variable_names(labels, offset, prefix) for offset in range(len(labels) + 1)]


def lookup_env_credentials(
    hostname: str,
    env: Mapping[str, str],
    prefix: str = ENV_PREFIX,
) -> Optional[Credential]:
    """Return credentials from the first fully-present variable pair, or None.

    A pair whose username or password is empty can't form a usable login, so it
    is skipped like an absent one and the scan moves on to the next tier.
    """
    for env_username, env_password in candidate_variable_names(hostname, prefix):
        if env_username not in env or env_password not in env:
            continue

        username, password = env[env_username], env[env_password]
        if not username or not password:
            logger.debug(f"Skipping {env_username}/{env_password}: empty value")
            continue

        logger.debug(f"Using credentials from {env_username}/{env_password}")
        return Credential(username=username, secret=password)

    return None
