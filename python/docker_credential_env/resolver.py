"""
Resolution of registry credentials for a single server URL.

Order of precedence:
1. DOCKER_<labels>_USR / DOCKER_<labels>_PSW environment variables
2. AWS ECR token exchange for <account>.dkr.ecr.<region>.amazonaws.com
3. GITHUB_TOKEN for ghcr.io
"""

import logging
from typing import Mapping, Optional

import boto3

from docker_credential_env.auth.providers import get_ecr_credentials, get_ghcr_credentials
from docker_credential_env.aws_credentials import SessionFactory
from docker_credential_env.cache_utils import CredentialsCache
from docker_credential_env.config_manager import ConfigManager
from docker_credential_env.credentials import Credential
from docker_credential_env.env_lookup import lookup_env_credentials
from docker_credential_env.hostname import ManagedCloudRegistry, PackageRegistry, classify_registry, get_hostname

logger = logging.getLogger(__name__)


class CredentialResolver:
    """Resolves registry credentials from the environment"""

    def __init__(
        self,
        env: Optional[Mapping[str, str]] = None,
        config: Optional[ConfigManager] = None,
        session_factory: SessionFactory = boto3.session.Session,
    ):
        """Initialize CredentialResolver

        Args:
            env: Environment mapping (defaults to the config's environment, i.e. os.environ)
            config: Helper configuration (defaults to one built from env)
            session_factory: boto3 Session constructor used for AWS calls
        """
        self.config = config or ConfigManager(env)
        self.env = self.config.env if env is None else env
        self.session_factory = session_factory
        self.aws_credentials_cache = CredentialsCache()

    def get(self, server_url: str) -> Optional[Credential]:
        """Return credentials for server_url, or None when no source matches.

        Raises:
            HostnameParseError: If server_url is not a valid URL
            CredentialHelperError: If a matching source is misconfigured or fails
        """
        hostname = get_hostname(server_url)

        credential = lookup_env_credentials(hostname, self.env, prefix=self.config.get_env_prefix())
        if credential is not None:
            return credential

        registry = classify_registry(hostname)

        if isinstance(registry, ManagedCloudRegistry):
            logger.debug(f"{hostname} is an ECR registry (account {registry.account_id}, region {registry.region})")
            return get_ecr_credentials(
                registry,
                self.env,
                self.config,
                session_factory=self.session_factory,
                cache=self.aws_credentials_cache,
            )

        if isinstance(registry, PackageRegistry):
            logger.debug(f"{hostname} is GitHub Container Registry")
            return get_ghcr_credentials(self.env, self.config)

        logger.debug(f"No credentials found for {hostname}")
        return None


def get_credentials(server_url: str, env: Optional[Mapping[str, str]] = None) -> Optional[Credential]:
    """Resolve credentials for server_url with a one-off resolver"""
    return CredentialResolver(env=env).get(server_url)
