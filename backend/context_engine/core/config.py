"""
Core configuration management for the Conversation Context Engine.
Settings are loaded from environment variables (and an optional .env file).
"""

from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment
    environment: str = "dev"

    # Store backend: "memory" for local development/tests, "cosmos" for production
    store_backend: str = "memory"

    # Azure Cosmos DB
    cosmos_db_endpoint: Optional[str] = None
    cosmos_database_name: str = "chatcontext"
    cosmos_messages_container: str = "messages"
    cosmos_services_container: str = "services"
    cosmos_links_container: str = "whatsapp-links"
    cosmos_clicks_container: str = "link-clicks"
    cosmos_customers_container: str = "customers"
    cosmos_tags_container: str = "tags"

    # Application Insights (tracing disabled when unset)
    applicationinsights_connection_string: Optional[str] = None

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = False

    # CORS Origins (comma-separated)
    cors_origins: str = "*"

    # Engine tuning
    context_history_limit: int = 10
    feedback_sample_limit: int = 10
    link_conversion_window_minutes: int = 60

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
