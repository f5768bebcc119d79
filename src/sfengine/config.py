from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from .exceptions import MissingCredentialsError
from .models import Credential


@dataclass
class SFConfig:
    """Connection settings for the CLI and scripts."""

    # "production" or "sandbox"
    environment: str = "production"

    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    security_token: str = field(default="", repr=False)

    # e.g. "v60.0"; simple-salesforce's default when unset
    api_version: Optional[str] = None

    @classmethod
    def from_env(cls) -> SFConfig:
        """Load configuration from environment variables."""
        return cls(
            environment=os.getenv("SF_ENVIRONMENT", "production"),
            username=os.getenv("SF_USERNAME"),
            password=os.getenv("SF_PASSWORD"),
            security_token=os.getenv("SF_SECURITY_TOKEN", ""),
            api_version=os.getenv("SF_API_VERSION"),
        )

    def credential(self) -> Credential:
        missing = [
            k
            for k, v in {
                "SF_USERNAME": self.username,
                "SF_PASSWORD": self.password,
            }.items()
            if not v
        ]
        if missing:
            raise MissingCredentialsError(missing)
        return Credential(
            username=self.username,
            password=self.password,
            security_token=self.security_token or "",
        )
