"""In-memory cache of resolved AWS credentials.

The docker client starts one helper process per request, so the cache only
pays off for callers that keep a CredentialResolver around and look up several
ECR registries of the same account. Nothing is ever written to disk.
"""

import time
from typing import Dict, Optional, Tuple

from docker_credential_env.credentials import ResolvedAWSCredentials


class CredentialsCache:
    """Resolved AWS credentials per (account, region), dropped before they expire"""

    def __init__(self, ttl_seconds: float = 900, expiry_margin: float = 60.0):
        """Initialize the cache

        Args:
            ttl_seconds: Lifetime of credentials without an expiry (static keys, profiles)
            expiry_margin: Temporary credentials are dropped this many seconds
                before they expire, so a token exchange never starts with them
        """
        self.ttl_seconds = ttl_seconds
        self.expiry_margin = expiry_margin
        self._entries: Dict[Tuple[str, str], Tuple[ResolvedAWSCredentials, float]] = {}

    def get(self, account_id: str, region: str) -> Optional[ResolvedAWSCredentials]:
        entry = self._entries.get((account_id, region))
        if entry is None:
            return None

        credentials, valid_until = entry
        if time.time() >= valid_until:
            del self._entries[(account_id, region)]
            return None
        return credentials

    def set(self, account_id: str, region: str, credentials: ResolvedAWSCredentials) -> None:
        if credentials.expiry is None:
            valid_until = time.time() + self.ttl_seconds
        else:
            valid_until = credentials.expiry.timestamp() - self.expiry_margin
        self._entries[(account_id, region)] = (credentials, valid_until)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
