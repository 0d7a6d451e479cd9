# src/uploads_api/config/settings.py
import tempfile
from typing import List, Optional
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """
    Single source of truth for all application settings.
    
    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)
    
    Usage:
        from uploads_api.config.settings import get_settings
        settings = get_settings()
        bucket_name = settings.gridfs_bucket_name
    """
    
    # Application Settings
    app_name: str = Field(
        default="uploads-api",
        description="Application name"
    )
    
    environment: str = Field(
        default="development",
        description="Runtime environment: development, test, or production"
    )
    
    # MongoDB / GridFS Configuration
    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        validation_alias=AliasChoices("mongodb_uri", "MONGODB_URI", "MONGO_URI"),
        description="MongoDB connection string"
    )
    
    mongodb_database: str = Field(
        default="uploads",
        description="Database holding the GridFS bucket"
    )
    
    gridfs_bucket_name: str = Field(
        default="images",
        description="GridFS bucket name (collections <bucket>.files and <bucket>.chunks)"
    )
    
    mongodb_timeout_ms: int = Field(
        default=5000,
        ge=100,
        description="Server selection timeout for MongoDB in milliseconds"
    )
    
    # PDF conversion service
    pdf_converter_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "pdf_converter_url",
            "PDF_CONVERTER_URL",
            "FLASK_SERVER_URL",
            "NEXT_PUBLIC_FLASK_SERVER_URL",
        ),
        description="Base URL of the PDF-to-images conversion service"
    )
    
    pdf_converter_timeout: float = Field(
        default=120.0,
        gt=0,
        description="Timeout in seconds for a conversion request"
    )
    
    # Upload handling
    scratch_dir: str = Field(
        default_factory=tempfile.gettempdir,
        description="Directory for temporary copies of uploaded files"
    )
    
    image_cache_max_age: int = Field(
        default=604800,
        ge=0,
        description="max-age in seconds for the Cache-Control header of served images"
    )
    
    cors_allow_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Origins allowed by the CORS middleware"
    )
    
    # Firebase (auth + user profiles)
    verify_id_tokens: bool = Field(
        default=False,
        description="Take the owner identity for deletes from a verified Firebase ID token"
    )
    
    firebase_project_id: Optional[str] = Field(
        default=None,
        description="Firebase project ID (falls back to application default credentials)"
    )
    
    users_collection: str = Field(
        default="users",
        description="Firestore collection holding user profile documents"
    )
    
    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    
    @property
    def is_development(self) -> bool:
        return self.environment == "development"
    
    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        """Validate environment is one of the allowed values."""
        valid_environments = ["development", "test", "production"]
        if v not in valid_environments:
            raise ValueError(f"Invalid environment: {v}. Must be one of {valid_environments}")
        return v
    
    @field_validator('pdf_converter_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        """Normalize the converter base URL so paths can be appended."""
        if v:
            v = v.strip().rstrip("/")
        return v or None
    
    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper()

    def get_environment_dict(self) -> dict:
        """Get configuration as a dictionary suitable for docker-compose or subprocess.
        
        Returns:
            Dictionary of environment variables
        """
        return {
            'APP_NAME': self.app_name,
            'ENVIRONMENT': self.environment,
            'MONGODB_URI': self.mongodb_uri,
            'MONGODB_DATABASE': self.mongodb_database,
            'GRIDFS_BUCKET_NAME': self.gridfs_bucket_name,
            'PDF_CONVERTER_URL': self.pdf_converter_url or '',
            'SCRATCH_DIR': self.scratch_dir,
            'VERIFY_ID_TOKENS': str(self.verify_id_tokens).lower(),
            'LOG_LEVEL': self.log_level,
        }

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=(".env", ".env.local"),  # .env.local takes precedence
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
