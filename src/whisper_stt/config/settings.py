"""Configuration settings for the whisper STT service."""

from pathlib import Path
from typing import Any, Tuple, Type

from pydantic import Field, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    EnvSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class SectionAwareEnvSource(EnvSettingsSource):
    """Environment source that only reads scalar keys.

    Nested sections (``model``, ``api``) read their own keys when they are
    built, so a stray ``MODEL`` or ``API`` variable is ignored instead of
    being decoded as JSON.
    """

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        annotation = field.annotation
        if isinstance(annotation, type) and issubclass(annotation, BaseSettings):
            return None, field_name, False
        return super().get_field_value(field, field_name)


class EnvFirstSettings(BaseSettings):
    """Settings base where environment variables beat constructor values.

    Constructor values come from the TOML file, so this gives the
    documented precedence: environment > TOML > defaults.
    """

    model_config = SettingsConfigDict(
        populate_by_name=True,
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            SectionAwareEnvSource(settings_cls),
            dotenv_settings,
            init_settings,
            file_secret_settings,
        )


class ModelConfig(EnvFirstSettings):
    """Model configuration settings."""

    name: str = Field(default="base.en", validation_alias="WHISPER_MODEL")
    models_dir: Path = Field(default=Path("models"), validation_alias="WHISPER_MODELS_DIR")
    device: str = Field(default="auto", validation_alias="WHISPER_DEVICE")
    compute_type: str = Field(default="default", validation_alias="WHISPER_COMPUTE_TYPE")

    @field_validator("models_dir", mode="before")
    @classmethod
    def validate_models_dir(cls, v):
        if isinstance(v, str):
            return Path(v)
        return v

    @property
    def path(self) -> Path:
        """Model binary derived from the model name."""
        return self.models_dir / f"faster-whisper-{self.name}" / "model.bin"


class APIConfig(EnvFirstSettings):
    """API configuration settings."""

    host: str = Field(default="0.0.0.0", validation_alias="SERVER_HOST")
    port: int = Field(default=8080, validation_alias="SERVER_PORT")
    max_file_size: int = Field(default=25 * 1024 * 1024, validation_alias="MAX_FILE_SIZE")
    keepalive_timeout: int = Field(default=60, validation_alias="KEEPALIVE_TIMEOUT")
    shutdown_grace_period: float = Field(default=30.0, validation_alias="SHUTDOWN_GRACE_PERIOD")

    @field_validator("max_file_size")
    @classmethod
    def validate_max_file_size(cls, v):
        if v <= 0:
            raise ValueError("max_file_size must be positive")
        return v


class Settings(EnvFirstSettings):
    """Main application settings."""

    app_name: str = Field(default="Whisper Transcription Server", validation_alias="APP_NAME")
    environment: str = Field(default="production", validation_alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="json", validation_alias="LOG_FORMAT")

    model: ModelConfig = Field(default_factory=ModelConfig)
    api: APIConfig = Field(default_factory=APIConfig)
