"""Configuration settings models using Pydantic."""

from pathlib import Path
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SpeakingOrderSetting = Literal["join", "enumeration", "identity"]
AdminPolicySetting = Literal["creator", "open"]


class ModeratorConfig(BaseModel):
    """Configuration for the circle moderator announcements."""

    enabled: bool = True
    model_id: str = "gemini-2.0-flash"
    timeout_seconds: float = Field(default=5.0, gt=0.0, le=60.0)
    max_tokens: int = Field(default=120, ge=1, le=8192)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    @field_validator("model_id")
    @classmethod
    def validate_model_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("model_id cannot be empty")
        return v.strip()


class CircleConfig(BaseModel):
    """Configuration for circle talking."""

    speaking_order: SpeakingOrderSetting = "join"
    admin_policy: AdminPolicySetting = "creator"


class DisciplineConfig(BaseModel):
    """Thresholds for the discipline engine.

    ``warning_missed`` and ``remove_missed`` are shared by the simple rule
    table and the four-tier evaluator so both always agree.
    """

    warning_missed: int = Field(default=3, ge=1)
    remove_missed: int = Field(default=5, ge=1)
    encourage_days: int = Field(default=2, ge=1)
    warning_days: int = Field(default=4, ge=1)
    remove_days: int = Field(default=7, ge=1)
    use_model: bool = False
    timeout_seconds: float = Field(default=10.0, gt=0.0, le=120.0)

    @model_validator(mode="after")
    def validate_ordering(self) -> "DisciplineConfig":
        if self.warning_missed >= self.remove_missed:
            raise ValueError("warning_missed must be lower than remove_missed")
        if not self.encourage_days < self.warning_days < self.remove_days:
            raise ValueError("day thresholds must satisfy encourage < warning < remove")
        return self


class StorageConfig(BaseModel):
    """Configuration for data storage."""

    database_path: str = "~/.circlecall/circlecall.db"

    @property
    def resolved_database_path(self) -> Path:
        """Get the resolved database path with ~ expanded."""
        return Path(self.database_path).expanduser()


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="CIRCLECALL_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    google_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("google_api_key", "GOOGLE_API_KEY", "GEMINI_API_KEY"),
    )

    moderator: ModeratorConfig = Field(default_factory=ModeratorConfig)
    circle: CircleConfig = Field(default_factory=CircleConfig)
    discipline: DisciplineConfig = Field(default_factory=DisciplineConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @field_validator("google_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty API keys as missing."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def moderator_available(self) -> bool:
        """Whether generated announcements can be requested."""
        return self.moderator.enabled and self.google_api_key is not None

    @property
    def discipline_model_available(self) -> bool:
        """Whether the generative discipline evaluator can be used."""
        return self.discipline.use_model and self.google_api_key is not None
