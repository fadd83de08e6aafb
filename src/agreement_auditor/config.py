from pathlib import Path
from typing import Optional, Tuple, Type

from pydantic import BaseModel
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, TomlConfigSettingsSource

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class AISettings(BaseModel):
    model: str = "google-gla:gemini-2.5-flash"
    api_key_env: str = "GOOGLE_API_KEY"
    timeout_seconds: float = 60.0


class ValidationSettings(BaseModel):
    # Amounts are IDR, which has no minor unit in practice.
    price_tolerance: float = 100.0
    total_tolerance: float = 100.0
    confidence_threshold: float = 0.7


class PathSettings(BaseModel):
    agreements: Path = Path("src/agreement_auditor/storage/agreements.json")
    daily_limits: Path = Path("src/agreement_auditor/storage/daily_limits.json")
    categories: Path = Path("src/agreement_auditor/storage/categories.json")


class AttestationSettings(BaseModel):
    url: Optional[str] = None
    timeout_seconds: float = 5.0


TOML_FILE = PROJECT_ROOT / "config.toml"


class Settings(BaseSettings):
    ai: AISettings = AISettings()
    validation: ValidationSettings = ValidationSettings()
    paths: PathSettings = PathSettings()
    attestation: AttestationSettings = AttestationSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        **kwargs,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, TomlConfigSettingsSource(settings_cls, toml_file=TOML_FILE))

    @property
    def agreements_path(self) -> Path:
        return PROJECT_ROOT / self.paths.agreements

    @property
    def daily_limits_path(self) -> Path:
        return PROJECT_ROOT / self.paths.daily_limits

    @property
    def categories_path(self) -> Path:
        return PROJECT_ROOT / self.paths.categories


settings = Settings()
