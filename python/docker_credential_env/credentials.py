"""Data classes passed between the resolution stages"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Credential:
    """Registry login returned to the docker client"""
    username: str
    secret: str = field(repr=False)

    def __post_init__(self):
        if not self.username or not self.secret:
            raise ValueError("Credential requires both a username and a secret")


@dataclass(frozen=True)
class AccountContext:
    """AWS principal whose credentials are being resolved"""
    account_id: str
    region: str = ""

    @property
    def registry_hostname(self) -> str:
        if not self.region:
            return f"{self.account_id}.dkr.ecr.amazonaws.com"
        return f"{self.account_id}.dkr.ecr.{self.region}.amazonaws.com"


@dataclass(frozen=True)
class ResolvedAWSCredentials:
    """Static or temporary AWS credentials plus a description of where they came from"""
    access_key_id: str = field(repr=False)
    secret_access_key: str = field(repr=False)
    session_token: Optional[str] = field(default=None, repr=False)
    source: str = ""
    expiry: Optional[datetime] = None
    # True when the credentials came from *_<account> variables or profile
    account_scoped: bool = False
