"""
Token exchange implementations for registries with dedicated authentication.

This module contains the actual authentication logic for the supported registry types.
"""

import base64
import binascii
import logging
from datetime import timezone
from typing import Any, Callable, Dict, Mapping, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from docker_credential_env.aws_credentials import SessionFactory, build_session, resolve_account_credentials
from docker_credential_env.cache_utils import CredentialsCache
from docker_credential_env.config_manager import ConfigManager
from docker_credential_env.credentials import AccountContext, Credential, ResolvedAWSCredentials
from docker_credential_env.errors import RemoteCallError, TokenDecodeError
from docker_credential_env.hostname import ManagedCloudRegistry
from docker_credential_env.retry_utils import Deadline, retry_operation

logger = logging.getLogger(__name__)


def _make_invoker(config: ConfigManager, deadline: Deadline) -> Callable:
    """Run AWS calls under the retry policy, turning botocore failures into RemoteCallError"""

    def invoke(call: Callable[[], Any], operation_name: str) -> Any:
        try:
            return retry_operation(
                call,
                max_attempts=config.get_retry_max_attempts(),
                initial_delay=config.get_retry_initial_delay(),
                max_delay=config.get_retry_max_delay(),
                exponential_base=config.get_retry_exponential_base(),
                jitter=config.get_retry_jitter(),
                operation_name=operation_name,
                deadline=deadline,
            )
        except (BotoCoreError, ClientError) as e:
            raise RemoteCallError(operation_name, e) from e

    return invoke


def _client_config(config: ConfigManager, region: str) -> Config:
    # Retries are driven by retry_utils so the backoff cap and deadline apply
    return Config(
        region_name=region,
        retries={"max_attempts": 1, "mode": "standard"},
        connect_timeout=config.get_connect_timeout(),
        read_timeout=config.get_read_timeout(),
    )


def decode_authorization_token(token: Optional[str], account_id: str) -> Credential:
    """Decode a base64 "username:password" ECR authorization token.

    Raises:
        TokenDecodeError: If the token is missing, not base64 or has no colon separator
    """
    if token is None:
        raise TokenDecodeError(f"ecr: authorization token for {account_id!r} is nil")

    try:
        decoded = base64.b64decode(token, validate=True).decode("utf-8")
    except (binascii.Error, ValueError) as e:
        raise TokenDecodeError(f"ecr: authorization token for {account_id!r} is not valid base64: {e}") from e

    if ":" not in decoded:
        raise TokenDecodeError(f"ecr: invalid authorization token format for {account_id!r}")

    username, password = decoded.split(":", 1)
    if not username or not password:
        raise TokenDecodeError(f"ecr: authorization token for {account_id!r} has an empty username or password")

    return Credential(username=username, secret=password)


def decode_authorization_response(response: Dict[str, Any], account_id: str, debug: bool = False) -> Credential:
    """Extract the credential from an ecr:GetAuthorizationToken response"""
    auth_data_list = response.get("authorizationData") or []
    if not auth_data_list:
        raise TokenDecodeError(f"ecr: no authorization data returned for {account_id!r}")

    auth_data = auth_data_list[0]
    expires_at = auth_data.get("expiresAt")
    if debug and expires_at is not None:
        expiration = expires_at.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        logger.info(f"ECR token for \"{account_id}\" will expire at {expiration} (UTC)")

    return decode_authorization_token(auth_data.get("authorizationToken"), account_id)


def get_ecr_credentials(
    registry: ManagedCloudRegistry,
    env: Mapping[str, str],
    config: ConfigManager,
    session_factory: SessionFactory = boto3.session.Session,
    cache: Optional[CredentialsCache] = None,
) -> Credential:
    """Exchange AWS credentials for an ECR login.

    Resolves credentials for the registry's account (assuming a role when one is
    configured), then calls ecr:GetAuthorizationToken. Both AWS calls run under
    the retry policy and share a single deadline.

    Args:
        registry: ECR registry (e.g. '123456789012.dkr.ecr.us-east-1.amazonaws.com')
        env: Environment mapping
        config: Helper configuration
        session_factory: boto3 Session constructor
        cache: In-memory cache for resolved AWS credentials

    Returns:
        Credential, typically with username "AWS"

    Raises:
        CredentialHelperError subclasses for configuration, remote, timeout and decode failures
    """
    context = AccountContext(account_id=registry.account_id, region=registry.region)
    deadline = Deadline(config.get_timeout(), f"ECR token exchange for {registry.hostname}")
    client_config = _client_config(config, registry.region)
    invoke = _make_invoker(config, deadline)
    debug = config.is_debug()

    credentials: Optional[ResolvedAWSCredentials] = None
    if cache is not None:
        credentials = cache.get(context.account_id, context.region)
    if credentials is None:
        credentials = resolve_account_credentials(
            context,
            env,
            session_factory=session_factory,
            debug=debug,
            client_config=client_config,
            invoke=invoke,
        )
        if cache is not None:
            cache.set(context.account_id, context.region, credentials)

    logger.debug(f"Requesting ECR authorization token for account {context.account_id} in {context.region}")
    ecr = build_session(credentials, context.region, session_factory).client("ecr", config=client_config)
    response = invoke(ecr.get_authorization_token, "ecr:GetAuthorizationToken")

    return decode_authorization_response(response, context.account_id, debug=debug)


def get_ghcr_credentials(env: Mapping[str, str], config: ConfigManager) -> Optional[Credential]:
    """GitHub Container Registry login from GITHUB_TOKEN, or None when unset"""
    token = env.get(config.get_github_token_variable())
    if not token:
        return None
    return Credential(username=config.get_ghcr_username(), secret=token)
