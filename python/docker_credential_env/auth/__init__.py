"""
Token exchange for registries with dedicated authentication.

This module provides authentication helpers for:
- AWS ECR (Elastic Container Registry)
- GitHub Container Registry (ghcr.io)
"""

from docker_credential_env.auth.providers import (
    decode_authorization_token,
    get_ecr_credentials,
    get_ghcr_credentials,
)

__all__ = [
    "decode_authorization_token",
    "get_ecr_credentials",
    "get_ghcr_credentials",
]
