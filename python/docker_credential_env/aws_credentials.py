"""
AWS credential resolution for a single account.

Credentials can be scoped to one AWS account by suffixing the usual variables
with ``_<account id>``. For account 123456789012 the helper looks at:

- AWS_ACCESS_KEY_ID_123456789012
- AWS_SECRET_ACCESS_KEY_123456789012
- AWS_SESSION_TOKEN_123456789012 (optional)
- AWS_PROFILE_123456789012
- AWS_ROLE_ARN_123456789012

before falling back to the standard, unsuffixed variables. As soon as any of
the suffixed key variables is set, both the access key and the secret key must
be; a half-configured account never silently falls back to other credentials.
"""

import logging
import time
from typing import Any, Callable, List, Mapping, Optional, TypeVar

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from docker_credential_env.config_manager import (
    ENV_AWS_ACCESS_KEY_ID,
    ENV_AWS_PROFILE,
    ENV_AWS_ROLE_ARN,
    ENV_AWS_SECRET_ACCESS_KEY,
    ENV_AWS_SESSION_TOKEN,
)
from docker_credential_env.credentials import AccountContext, ResolvedAWSCredentials
from docker_credential_env.errors import (
    AccountContextError,
    CredentialsExhaustedError,
    PartialCredentialsError,
    ProfileCredentialsError,
    RemoteCallError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

SessionFactory = Callable[..., boto3.session.Session]
# Runs a remote call, e.g. through retry_utils.retry_operation
Invoker = Callable[[Callable[[], T], str], T]

ROLE_SESSION_NAME_PREFIX = "docker-credential-env"


def invoke_once(call: Callable[[], T], operation_name: str) -> T:
    """Run a remote call a single time, reporting AWS failures as RemoteCallError"""
    try:
        return call()
    except (BotoCoreError, ClientError) as e:
        raise RemoteCallError(operation_name, e) from e


def suffixed(variable: str, account_id: str) -> str:
    return f"{variable}_{account_id}"


def has_account_suffixed_credentials(account_id: str, env: Mapping[str, str]) -> bool:
    """True when both the suffixed access key and secret key are set for the account"""
    if not account_id:
        return False
    return bool(
        env.get(suffixed(ENV_AWS_ACCESS_KEY_ID, account_id))
        and env.get(suffixed(ENV_AWS_SECRET_ACCESS_KEY, account_id))
    )


def get_role_arn(account_id: str, env: Mapping[str, str], account_scoped: Optional[bool] = None) -> str:
    """Role to assume for the account, or "" when none applies.

    AWS_ROLE_ARN_<account> always wins. The standard AWS_ROLE_ARN only applies
    when the credentials are not account-scoped: a role meant for the ambient
    identity must not be assumed with another account's keys.

    Args:
        account_id: AWS account ID
        env: Environment mapping
        account_scoped: Whether account-scoped credentials are in use; derived
            from the suffixed key variables when not given
    """
    role_arn = env.get(suffixed(ENV_AWS_ROLE_ARN, account_id), "").strip()
    if role_arn:
        return role_arn

    if account_scoped is None:
        account_scoped = has_account_suffixed_credentials(account_id, env)
    if account_scoped:
        return ""

    return env.get(ENV_AWS_ROLE_ARN, "").strip()


def get_profile(account_id: str, env: Mapping[str, str]) -> Optional[str]:
    """Named profile for the account: AWS_PROFILE_<account>, then AWS_PROFILE"""
    for variable in (suffixed(ENV_AWS_PROFILE, account_id), ENV_AWS_PROFILE):
        profile = env.get(variable, "").strip()
        if profile:
            return profile
    return None


def _profile_credentials(
    profile: str,
    variable: str,
    context: AccountContext,
    session_factory: SessionFactory,
    invoke: Optional[Invoker] = None,
) -> Any:
    """Load frozen credentials for a named profile through boto3's own config chain.

    A profile may declare role_arn, SSO or credential_process, in which case
    loading it calls AWS; that load runs through invoke like any other call.
    """
    try:
        session = session_factory(profile_name=profile, region_name=context.region or None)
    except BotoCoreError as e:
        raise ProfileCredentialsError(profile, variable, str(e)) from e

    def load():
        credentials = session.get_credentials()
        if credentials is None:
            return None
        return credentials.get_frozen_credentials()

    try:
        frozen = invoke(load, f"load profile {profile}") if invoke else load()
    except (BotoCoreError, ClientError) as e:
        raise ProfileCredentialsError(profile, variable, str(e)) from e

    if frozen is None:
        raise ProfileCredentialsError(profile, variable, "no credentials configured")
    return frozen


def resolve_suffixed_environment(
    context: AccountContext,
    env: Mapping[str, str],
    session_factory: SessionFactory,
    invoke: Optional[Invoker] = None,
) -> Optional[ResolvedAWSCredentials]:
    account_id = context.account_id
    access_key_var = suffixed(ENV_AWS_ACCESS_KEY_ID, account_id)
    secret_key_var = suffixed(ENV_AWS_SECRET_ACCESS_KEY, account_id)
    session_token_var = suffixed(ENV_AWS_SESSION_TOKEN, account_id)

    access_key_id = env.get(access_key_var, "")
    secret_access_key = env.get(secret_key_var, "")
    session_token = env.get(session_token_var, "")

    if not (access_key_id or secret_access_key or session_token):
        return None

    if not access_key_id:
        raise PartialCredentialsError(access_key_var, account_id)
    if not secret_access_key:
        raise PartialCredentialsError(secret_key_var, account_id)

    return ResolvedAWSCredentials(
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        session_token=session_token or None,
        source=f"Suffixed AWS Environment (Account: {account_id})",
        account_scoped=True,
    )


def resolve_suffixed_profile(
    context: AccountContext,
    env: Mapping[str, str],
    session_factory: SessionFactory,
    invoke: Optional[Invoker] = None,
) -> Optional[ResolvedAWSCredentials]:
    variable = suffixed(ENV_AWS_PROFILE, context.account_id)
    profile = env.get(variable, "").strip()
    if not profile:
        return None

    frozen = _profile_credentials(profile, variable, context, session_factory, invoke)
    return ResolvedAWSCredentials(
        access_key_id=frozen.access_key,
        secret_access_key=frozen.secret_key,
        session_token=frozen.token or None,
        source=f"Suffixed AWS Profile {profile} (Account: {context.account_id})",
        account_scoped=True,
    )


def resolve_standard_environment(
    context: AccountContext,
    env: Mapping[str, str],
    session_factory: SessionFactory,
    invoke: Optional[Invoker] = None,
) -> Optional[ResolvedAWSCredentials]:
    access_key_id = env.get(ENV_AWS_ACCESS_KEY_ID, "")
    secret_access_key = env.get(ENV_AWS_SECRET_ACCESS_KEY, "")

    if not access_key_id and not secret_access_key:
        # Give a named profile the chance to supply credentials
        return None
    if not access_key_id:
        raise CredentialsExhaustedError(ENV_AWS_ACCESS_KEY_ID, context.account_id)
    if not secret_access_key:
        raise CredentialsExhaustedError(ENV_AWS_SECRET_ACCESS_KEY, context.account_id)

    return ResolvedAWSCredentials(
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        session_token=env.get(ENV_AWS_SESSION_TOKEN, "") or None,
        source=f"Standard AWS Environment (Account: {context.account_id})",
    )


def resolve_standard_profile(
    context: AccountContext,
    env: Mapping[str, str],
    session_factory: SessionFactory,
    invoke: Optional[Invoker] = None,
) -> Optional[ResolvedAWSCredentials]:
    profile = env.get(ENV_AWS_PROFILE, "").strip()
    if not profile:
        return None

    frozen = _profile_credentials(profile, ENV_AWS_PROFILE, context, session_factory, invoke)
    return ResolvedAWSCredentials(
        access_key_id=frozen.access_key,
        secret_access_key=frozen.secret_key,
        session_token=frozen.token or None,
        source=f"Standard AWS Profile {profile} (Account: {context.account_id})",
    )


CredentialResolverFn = Callable[
    [AccountContext, Mapping[str, str], SessionFactory, Optional[Invoker]], Optional[ResolvedAWSCredentials]
]

# Evaluated in order; the first resolver returning credentials wins
CREDENTIAL_RESOLVERS: List[CredentialResolverFn] = [
    resolve_suffixed_environment,
    resolve_suffixed_profile,
    resolve_standard_environment,
    resolve_standard_profile,
]


def build_session(
    credentials: ResolvedAWSCredentials,
    region: str,
    session_factory: SessionFactory = boto3.session.Session,
) -> boto3.session.Session:
    """boto3 session pinned to explicit credentials"""
    return session_factory(
        aws_access_key_id=credentials.access_key_id,
        aws_secret_access_key=credentials.secret_access_key,
        aws_session_token=credentials.session_token,
        region_name=region or None,
    )


def assume_role(
    credentials: ResolvedAWSCredentials,
    role_arn: str,
    context: AccountContext,
    session_factory: SessionFactory = boto3.session.Session,
    client_config: Optional[Config] = None,
    invoke: Optional[Invoker] = None,
) -> ResolvedAWSCredentials:
    """Exchange static credentials for temporary credentials of role_arn via STS"""
    sts = build_session(credentials, context.region, session_factory).client("sts", config=client_config)
    session_name = f"{ROLE_SESSION_NAME_PREFIX}-{int(time.time())}"

    def call():
        return sts.assume_role(RoleArn=role_arn, RoleSessionName=session_name)

    response = invoke(call, "sts:AssumeRole") if invoke else call()
    assumed = response["Credentials"]

    return ResolvedAWSCredentials(
        access_key_id=assumed["AccessKeyId"],
        secret_access_key=assumed["SecretAccessKey"],
        session_token=assumed.get("SessionToken"),
        source=f"Assumed Role {role_arn} via {credentials.source}",
        expiry=assumed.get("Expiration"),
        account_scoped=credentials.account_scoped,
    )


def resolve_account_credentials(
    context: AccountContext,
    env: Mapping[str, str],
    session_factory: SessionFactory = boto3.session.Session,
    debug: bool = False,
    client_config: Optional[Config] = None,
    invoke: Optional[Invoker] = None,
) -> ResolvedAWSCredentials:
    """Resolve credentials for an AWS account, assuming a role when one is configured

    Args:
        context: Account (and region) being accessed
        env: Environment mapping
        session_factory: boto3 Session constructor
        debug: Emit the resolved source as a diagnostic line
        client_config: botocore Config for the STS client
        invoke: Wrapper used to run profile loads and the STS call (retry policy);
            defaults to a single attempt

    Returns:
        ResolvedAWSCredentials

    Raises:
        AccountContextError: If the account ID is empty
        PartialCredentialsError: If suffixed variables are incomplete
        CredentialsExhaustedError: If no credential source is available
        ProfileCredentialsError: If a named profile can't be loaded
        RemoteCallError: If loading a profile or assuming the role fails remotely
    """
    if not context.account_id:
        raise AccountContextError("account ID must be set")
    invoke = invoke or invoke_once

    resolved = None
    for resolver in CREDENTIAL_RESOLVERS:
        resolved = resolver(context, env, session_factory, invoke)
        if resolved is not None:
            break

    if resolved is None:
        raise CredentialsExhaustedError(ENV_AWS_ACCESS_KEY_ID, context.account_id)

    role_arn = get_role_arn(context.account_id, env, account_scoped=resolved.account_scoped)
    if role_arn:
        resolved = assume_role(resolved, role_arn, context, session_factory, client_config, invoke)

    if debug:
        logger.info(f"Authenticating access to '{context.registry_hostname}/' with \"{resolved.source}\"")

    return resolved
