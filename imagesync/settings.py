from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from imagesync.utils.settings_utils import DockerSecretsSettingsSource


class GeneralConfig(BaseSettings):
    SENTRY_DSN: str = ""
    SENTRY_ENVIRONMENT: str = ""


class AwsConfig(BaseSettings):
    AWS_REGION: str = "us-east-1"
    AWS_PROFILE: Optional[str] = None
    """Named shared-config profile; the default credential chain is used when unset"""

    AWS_ACCOUNT_ID: str = ""
    """Account used for promotions that do not name one"""


class RegistryConfig(BaseSettings):
    REGISTRY_HOST_TEMPLATE: str = "dkr.ecr.{region}.amazonaws.com"
    REGISTRY_USERNAME: str = "AWS"
    PROMOTION_TAG: str = "latest"

    TAG_FILTER: str = "1.0.0"
    """Substring an image tag must contain to be listed. Empty lists every tag."""

    PAGE_SIZE: int = Field(default=10, ge=1, le=1000)

    @field_validator("REGISTRY_HOST_TEMPLATE")
    @classmethod
    def validate_host_template(cls, value: str) -> str:
        if "{region}" not in value:
            raise ValueError("REGISTRY_HOST_TEMPLATE must contain '{region}'")
        return value


class SyncConfig(BaseSettings):
    SYNC_TIMEOUT_SECONDS: Optional[float] = Field(default=900.0, ge=0)
    """Deadline for one listing or promotion. 0 or unset disables it."""


class Settings(
    GeneralConfig,
    AwsConfig,
    RegistryConfig,
    SyncConfig,
    BaseSettings,
):
    model_config = SettingsConfigDict(
        env_file=(".env", ".env.prod", ".env.test"),
        extra="allow",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Explicit arguments win, then `<NAME>_FILE` secrets, then the environment
        and .env files. Field defaults apply last."""
        return (
            init_settings,
            DockerSecretsSettingsSource(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )


settings = Settings()
