"""
Configuration module for Latai.
Handles environment variables and application settings.
"""

import os
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Project paths
LATAI_HOME = Path(os.getenv("LATAI_HOME", str(Path.home() / ".latai")))
PROMPTS_DIR = LATAI_HOME / "prompts"
LOGS_DIR = LATAI_HOME / "logs"

DEFAULT_AWS_PROFILE = "default"
DEFAULT_AWS_REGION = "us-east-1"


class ProviderConfig(BaseModel):
    """Credentials and connection settings for model providers."""

    openai_api_key: Optional[str] = Field(default=None)
    groq_api_key: Optional[str] = Field(default=None)
    aws_profile: str = Field(default=DEFAULT_AWS_PROFILE)
    aws_region: str = Field(default=DEFAULT_AWS_REGION)

    openai_base_url: str = Field(default="https://api.openai.com/v1")
    groq_base_url: str = Field(default="https://api.groq.com/openai/v1")

    request_timeout: float = Field(default=120.0, gt=0)
    verify_attempts: int = Field(default=3, ge=1)

    @classmethod
    def from_env(cls) -> "ProviderConfig":
        """Load provider configuration from environment variables."""
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            groq_api_key=os.getenv("GROQ_API_KEY"),
            aws_profile=os.getenv("AWS_PROFILE") or DEFAULT_AWS_PROFILE,
            aws_region=os.getenv("AWS_REGION") or DEFAULT_AWS_REGION,
        )


class EvaluatorConfig(BaseModel):
    """Latency evaluation settings."""

    # None means one call per prompt (unique sampling)
    sample_size: Optional[int] = Field(default=None, ge=1)


class PromptConfig(BaseModel):
    """Where operator-provided prompts are looked up."""

    user_prompts_dir: Path = Field(default=PROMPTS_DIR)


class LoggingConfig(BaseModel):
    """Log file settings. The TUI owns the terminal, so logs go to a file."""

    log_file: Path = Field(default=LOGS_DIR / "latai.log")
    level: str = Field(default="INFO")


class AppConfig(BaseModel):
    """Main application configuration."""

    providers: ProviderConfig = Field(default_factory=ProviderConfig.from_env)
    evaluator: EvaluatorConfig = Field(default_factory=EvaluatorConfig)
    prompts: PromptConfig = Field(default_factory=PromptConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Providers loaded at startup, in table order
    enabled_providers: list[str] = Field(default=[
        "openai",
        "bedrock",
        "groq",
    ])

    # Case-insensitive substring applied to model display names
    model_filter: str = Field(default="")


# Global configuration instance
config = AppConfig()


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    return config


def update_config(**kwargs) -> AppConfig:
    """Update configuration with new values."""
    global config
    config = AppConfig(**kwargs)
    return config
