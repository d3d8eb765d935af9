"""Unit tests for docker_credential_env/resolver.py"""

import base64

import pytest
from botocore.exceptions import ClientError

from docker_credential_env.credentials import Credential
from docker_credential_env.errors import HostnameParseError, PartialCredentialsError, RemoteCallError
from docker_credential_env.resolver import CredentialResolver, get_credentials

ACCOUNT_ID = "123456789012"
ECR_HOSTNAME = f"{ACCOUNT_ID}.dkr.ecr.us-east-1.amazonaws.com"

ENV = {
    "DOCKER_example_com_USR": "u1",
    "DOCKER_example_com_PSW": "p1",
    "DOCKER_repo_example_com_USR": "u2",
    "DOCKER_repo_example_com_PSW": "p2",
    "GITHUB_TOKEN": "t1",
}


def _token_response(raw: bytes = b"AWS:secrettoken"):
    return {"authorizationData": [{"authorizationToken": base64.b64encode(raw).decode()}]}


class TestCredentialResolverGet:
    """Tests for CredentialResolver.get"""

    @pytest.mark.parametrize(
        "server_url,expected",
        [
            ("https://example.com", Credential("u1", "p1")),
            ("https://example.net", None),
            ("https://repo.example.com", Credential("u2", "p2")),
            ("https://other.example.com", Credential("u1", "p1")),
            ("https://repo-example.com", Credential("u2", "p2")),
            ("https://other-example.com", None),
            ("https://ghcr.io", Credential("x-access-token", "t1")),
            ("example.com/v2/", Credential("u1", "p1")),
        ],
    )
    def test_get(self, aws, server_url, expected):
        assert CredentialResolver(env=ENV, session_factory=aws.factory).get(server_url) == expected
        aws.factory.assert_not_called()

    def test_ghcr_without_token_is_not_found(self, aws):
        assert CredentialResolver(env={}, session_factory=aws.factory).get("ghcr.io") is None

    def test_env_pair_wins_over_ghcr(self, aws):
        env = {"DOCKER_ghcr_io_USR": "me", "DOCKER_ghcr_io_PSW": "pat", "GITHUB_TOKEN": "t1"}
        assert CredentialResolver(env=env, session_factory=aws.factory).get("ghcr.io") == Credential("me", "pat")

    def test_env_pair_wins_over_ecr(self, aws):
        env = {
            "DOCKER_amazonaws_com_USR": "AWS",
            "DOCKER_amazonaws_com_PSW": "static-token",
            "AWS_ACCESS_KEY_ID": "AKIASTANDARD",
            "AWS_SECRET_ACCESS_KEY": "standard-secret",
        }
        credential = CredentialResolver(env=env, session_factory=aws.factory).get(ECR_HOSTNAME)

        assert credential == Credential("AWS", "static-token")
        aws.ecr.get_authorization_token.assert_not_called()

    def test_ecr_token_exchange(self, aws):
        aws.ecr.get_authorization_token.return_value = _token_response()
        env = {"AWS_ACCESS_KEY_ID": "AKIASTANDARD", "AWS_SECRET_ACCESS_KEY": "standard-secret"}

        credential = CredentialResolver(env=env, session_factory=aws.factory).get(ECR_HOSTNAME)

        assert credential == Credential("AWS", "secrettoken")
        aws.ecr.get_authorization_token.assert_called_once_with()

    def test_ecr_errors_propagate(self, aws):
        env = {f"AWS_ACCESS_KEY_ID_{ACCOUNT_ID}": "AKIA"}

        with pytest.raises(PartialCredentialsError):
            CredentialResolver(env=env, session_factory=aws.factory).get(f"https://{ECR_HOSTNAME}/v2/")

    def test_parse_errors_propagate(self, aws):
        with pytest.raises(HostnameParseError):
            CredentialResolver(env=ENV, session_factory=aws.factory).get("https://[::1")


def test_get_credentials_uses_given_environment():
    assert get_credentials("repo.example.com", env=ENV) == Credential("u2", "p2")


def test_profile_load_failure_is_a_helper_error(aws):
    frozen = aws.session.get_credentials.return_value.get_frozen_credentials
    frozen.side_effect = ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "denied"}, "ResponseMetadata": {"HTTPStatusCode": 403}},
        "AssumeRole",
    )
    env = {f"AWS_PROFILE_{ACCOUNT_ID}": "ops"}

    with pytest.raises(RemoteCallError):
        CredentialResolver(env=env, session_factory=aws.factory).get(ECR_HOSTNAME)
