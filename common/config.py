"""Deployment configuration resolved from the process environment.

The resolver only reads values; deciding what to do when one is missing is
left to the caller (``app.main`` terminates the process).
"""
import os
from typing import Mapping, Optional, Sequence

from attrs import define, field
from attrs.validators import instance_of, min_len

import common.constants as constants


class MissingConfigurationError(ValueError):
    """One or more required environment variables are absent or blank."""

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = tuple(missing)
        names = ", ".join(self.missing)
        super().__init__(f"{names} environment variable is not set")


@define(slots=True, frozen=True)
class DeploymentConfig:
    domain_name: str = field(validator=[instance_of(str), min_len(1)])
    email: str = field(validator=[instance_of(str), min_len(1)])
    github_owner: str = field(default=constants.GITHUB_OWNER)
    github_repo: str = field(default=constants.GITHUB_REPO)
    account: Optional[str] = field(default=None)
    region: str = field(default=constants.DEFAULT_REGION)


@define(slots=True, frozen=True)
class EnvironmentResolver:
    environ: Mapping[str, str] = field(factory=lambda: dict(os.environ))

    def resolve(self, name: str) -> Optional[str]:
        """Return the named value, or None when it is unset or blank."""
        value = self.environ.get(name)
        if value is None or not value.strip():
            return None
        return value.strip()

    def missing(self, names: Sequence[str] = constants.REQUIRED_ENV_VARS) -> list[str]:
        return [name for name in names if self.resolve(name) is None]

    def resolve_config(self) -> DeploymentConfig:
        missing = self.missing()
        if missing:
            raise MissingConfigurationError(missing)

        return DeploymentConfig(
            domain_name=self.resolve(constants.ENV_DOMAIN_NAME),
            email=self.resolve(constants.ENV_EMAIL),
            github_owner=self.resolve(constants.ENV_GITHUB_OWNER)
            or constants.GITHUB_OWNER,
            github_repo=self.resolve(constants.ENV_GITHUB_REPO)
            or constants.GITHUB_REPO,
            account=self.resolve("CDK_DEFAULT_ACCOUNT"),
            region=self.resolve("CDK_DEFAULT_REGION") or constants.DEFAULT_REGION,
        )
