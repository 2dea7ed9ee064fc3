"""Application configuration settings."""
import logging
from pathlib import Path
from pydantic_settings import BaseSettings
from typing import List, Optional, Tuple


PLACEHOLDER_ACCESS_TOKEN = "your_channel_access_token_here"

DEFAULT_TEMPLATES_PATH = str(Path(__file__).parent / "templates" / "rich-menu-templates.json")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # LINE API Configuration
    line_channel_access_token: str = ""
    line_api_base_url: str = "https://api.line.me"
    line_data_api_base_url: str = "https://api-data.line.me"
    line_api_max_retries: int = 3
    line_api_retry_delay: float = 1.0
    line_api_timeout: float = 10.0
    
    # Rich Menu Constraints
    allowed_image_sizes: List[Tuple[int, int]] = [
        (2500, 1686),
        (2500, 843),
        (1200, 810),
        (1200, 405),
        (800, 540),
        (800, 270),
    ]
    allowed_image_types: List[str] = ["image/png", "image/jpeg"]
    max_image_bytes: int = 1024 * 1024
    
    # Templates
    templates_path: str = DEFAULT_TEMPLATES_PATH
    
    # Application Settings
    debug: bool = False
    log_level: str = "INFO"
    port: int = 3000
    
    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"
    
    @property
    def has_access_token(self) -> bool:
        """Check whether a usable channel access token is configured."""
        return is_usable_token(self.line_channel_access_token)


def is_usable_token(token: str) -> bool:
    """
    Check whether a token can be sent to LINE.
    
    Empty values and the placeholder copied from the sample .env file
    are treated as "not configured".
    """
    return bool(token) and token != PLACEHOLDER_ACCESS_TOKEN


# Global settings instance
settings = Settings()


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure the root logger for the API server and the CLI.
    
    Args:
        level: Log level name (defaults to ``settings.log_level``)
    """
    level_name = (level or settings.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
