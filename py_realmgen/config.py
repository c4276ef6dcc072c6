"""Configuration management."""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(
        default="json", description="Logging format (json or console)"
    )

    # Generation
    default_grid_width: int = Field(default=300, description="Default grid width")
    default_grid_height: int = Field(default=300, description="Default grid height")
    max_grid_width: int = Field(default=1000, description="Max allowed grid width")
    max_grid_height: int = Field(default=1000, description="Max allowed grid height")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "REALMGEN_"
        extra = "ignore"


settings = Settings()
