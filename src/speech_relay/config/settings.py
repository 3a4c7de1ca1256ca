"""Configuration settings for the speech relay service."""

import tempfile
from pathlib import Path
from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Common Assamese words used to bias recognition
DEFAULT_VOCABULARY_HINTS = [
    "মই",
    "এজন",
    "ছাত্ৰ",
    "ভাল",
    "আছোঁ",
    "তুমি",
    "কেনে",
    "আছা",
    "কি",
    "খবৰ",
    "ধন্যবাদ",
    "আপোনাৰ",
    "নাম",
    "ঘৰ",
    "ক'ত",
    "নমস্কাৰ",
]

RECOGNITION_BACKENDS = ("google", "openai")


class DSPConfig(BaseSettings):
    """Audio conditioning settings."""

    ffmpeg_path: Optional[str] = None
    temp_dir: Path = Path(tempfile.gettempdir()) / "speech-relay"
    timeout: float = 60.0

    model_config = SettingsConfigDict(env_prefix="RELAY_DSP_")


class RecognitionSettings(BaseSettings):
    """Speech recognition settings."""

    backend: str = "google"
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("RELAY_RECOGNITION_API_KEY", "GOOGLE_API_KEY"),
    )
    base_url: str = "https://speech.googleapis.com"
    language_code: str = "as-IN"
    use_enhanced: bool = True
    vocabulary_hints: List[str] = Field(default_factory=lambda: list(DEFAULT_VOCABULARY_HINTS))
    openai_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("RELAY_RECOGNITION_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    openai_base_url: str = "https://api.openai.com"
    openai_model: str = "gpt-4o-mini-transcribe"
    openai_prompt: str = "The following audio is spoken in Assamese language."
    timeout: float = 30.0

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in RECOGNITION_BACKENDS:
            raise ValueError(f"backend must be one of {RECOGNITION_BACKENDS}, got '{v}'")
        return v

    model_config = SettingsConfigDict(env_prefix="RELAY_RECOGNITION_", populate_by_name=True)


class TranslationSettings(BaseSettings):
    """Text translation settings."""

    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("RELAY_TRANSLATION_API_KEY", "GOOGLE_API_KEY"),
    )
    base_url: str = "https://translation.googleapis.com"
    source_language: str = "as"
    target_language: str = "en"
    timeout: float = 30.0

    model_config = SettingsConfigDict(env_prefix="RELAY_TRANSLATION_", populate_by_name=True)


class SynthesisSettings(BaseSettings):
    """Speech synthesis settings."""

    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("RELAY_SYNTHESIS_API_KEY", "GEMINI_API_KEY"),
    )
    base_url: str = "https://generativelanguage.googleapis.com"
    model: str = "gemini-2.5-flash-preview-tts"
    voice: str = "Puck"
    sample_rate: int = Field(default=24000, gt=0)
    timeout: float = 60.0

    model_config = SettingsConfigDict(
        env_prefix="RELAY_SYNTHESIS_",
        populate_by_name=True,
        protected_namespaces=(),
    )


class PipelineConfig(BaseSettings):
    """Pipeline orchestration settings."""

    condition_audio: bool = True
    stage_timeout: float = Field(default=120.0, gt=0)
    upload_encoding: str = "WEBM_OPUS"
    upload_sample_rate: int = 48000

    model_config = SettingsConfigDict(env_prefix="RELAY_PIPELINE_")


class APIConfig(BaseSettings):
    """API configuration settings."""

    host: str = "0.0.0.0"
    port: int = 5000
    max_upload_bytes: int = 25 * 1024 * 1024
    max_text_chars: int = 5000
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    model_config = SettingsConfigDict(env_prefix="RELAY_API_")


class Settings(BaseSettings):
    """Main application settings."""

    app_name: str = "Speech Relay Service"
    environment: str = "production"
    log_level: str = "INFO"
    log_format: str = "json"

    dsp: DSPConfig = Field(default_factory=DSPConfig)
    recognition: RecognitionSettings = Field(default_factory=RecognitionSettings)
    translation: TranslationSettings = Field(default_factory=TranslationSettings)
    synthesis: SynthesisSettings = Field(default_factory=SynthesisSettings)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    api: APIConfig = Field(default_factory=APIConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        return v.upper()

    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
