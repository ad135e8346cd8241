"""Application settings and environment configuration."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
PROJECT_ROOT = Path(__file__).parent.parent.parent
load_dotenv(PROJECT_ROOT / ".env")


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    # Anthropic
    anthropic_api_key: str = os.getenv("ANTHROPIC_API_KEY", "")
    default_model: str = os.getenv("DEFAULT_MODEL", "claude-sonnet-4-5-20250929")
    query_model: str = os.getenv("QUERY_MODEL", "claude-3-haiku-20240307")
    max_output_tokens: int = int(os.getenv("MAX_OUTPUT_TOKENS", "64000"))

    # Google Custom Search
    google_api_key: str = os.getenv("GOOGLE_API_KEY", "")
    google_cx: str = os.getenv("GOOGLE_CX", "")
    google_search_url: str = os.getenv(
        "GOOGLE_SEARCH_URL", "https://www.googleapis.com/customsearch/v1"
    )
    search_page_size: int = 10
    search_result_cap: int = int(os.getenv("SEARCH_RESULT_CAP", "15"))
    search_page_delay: float = float(os.getenv("SEARCH_PAGE_DELAY", "1.0"))  # seconds

    # Scraping microservice
    scraper_url: str = os.getenv("SCRAPER_URL", "http://localhost:3001")
    scrape_timeout: float = float(os.getenv("SCRAPE_TIMEOUT", "30"))  # seconds
    scrape_delay: float = float(os.getenv("SCRAPE_DELAY", "2.0"))  # seconds

    # Generation
    # Total characters of source text passed to outline/academic prompts
    source_char_budget: int = int(os.getenv("SOURCE_CHAR_BUDGET", "100000"))

    # Worker pool
    max_concurrent_pipelines: int = int(os.getenv("MAX_CONCURRENT_PIPELINES", "3"))
    pipeline_queue_size: int = int(os.getenv("PIPELINE_QUEUE_SIZE", "100"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    def validate(self) -> list[str]:
        """Validate required settings are present."""
        errors = []
        if not self.anthropic_api_key:
            errors.append("ANTHROPIC_API_KEY is not set")
        if not self.google_api_key:
            errors.append("GOOGLE_API_KEY is not set")
        if not self.google_cx:
            errors.append("GOOGLE_CX is not set")
        if not self.scraper_url:
            errors.append("SCRAPER_URL is not set")
        return errors


# Global settings instance
settings = Settings()
