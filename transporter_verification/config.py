"""
Configuration management for the Transporter Document Verification engine.
Loads settings from environment variables with validation.
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Azure AI Document Intelligence (OCR text extraction)
    azure_document_intelligence_endpoint: str = Field(
        default="", description="Azure AI Document Intelligence endpoint URL"
    )
    azure_document_intelligence_key: str = Field(
        default="", description="Azure AI Document Intelligence API key"
    )
    azure_document_intelligence_model: str = Field(
        default="prebuilt-read", description="Model used for document text extraction"
    )

    # YouVerify (driving licence verification)
    youverify_base_url: str = Field(
        default="https://api.youverify.co", description="YouVerify API base URL"
    )
    youverify_api_key: str = Field(default="", description="YouVerify API key")

    # Verification policy
    upstream_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout for each extractor/verifier call"
    )
    bulk_max_concurrency: int = Field(
        default=5, ge=1, description="Maximum concurrent verifications in a batch"
    )
    minimum_driver_age: int = Field(
        default=18, description="Minimum age derived from the national ID number"
    )
    registered_insurance_providers: str = Field(
        default="JUBILEE,APA,BRITAM,CIC,MADISON,HERITAGE,KENINDIA,ORIENT,PACIS,PHOENIX,TAKAFUL",
        description="Comma-separated registered insurance providers",
    )

    # Storage
    aggregate_snapshot_dir: str = Field(
        default="", description="Directory for JSON aggregate snapshots (disabled if empty)"
    )

    # Application Settings
    log_level: str = Field(default="INFO", description="Logging level")
    environment: str = Field(default="development", description="Runtime environment")

    @property
    def registered_insurance_providers_list(self) -> list[str]:
        return [
            provider.strip().upper()
            for provider in self.registered_insurance_providers.split(",")
            if provider.strip()
        ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
