"""
Application settings loaded from the environment.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

DEFAULT_GROQ_MODEL = "llama-3.3-70b-versatile"


class Settings(BaseModel):
    """Runtime configuration for the webhook server."""

    # LLM provider
    groq_api_key: Optional[str] = None
    groq_model: str = DEFAULT_GROQ_MODEL
    llm_temperature: float = 0.7
    unit_search_model: Optional[str] = None  # Falls back to groq_model

    # Webhook authenticity
    webhook_secret: Optional[str] = None

    # Generation
    max_tool_steps: int = 10

    # Conversation lifecycle (0 disables idle eviction)
    conversation_idle_ttl_seconds: float = 3600
    eviction_interval_seconds: float = 60

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            load_dotenv_file: Load a ``.env`` file into the environment first

        Returns:
            Settings instance
        """
        if load_dotenv_file:
            load_dotenv()

        data = {
            "groq_api_key": os.getenv("GROQ_API_KEY"),
            "groq_model": os.getenv("GROQ_MODEL", DEFAULT_GROQ_MODEL),
            "unit_search_model": os.getenv("UNIT_SEARCH_MODEL"),
            "webhook_secret": os.getenv("LAYERCODE_WEBHOOK_SECRET"),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
        }
        # Numeric settings keep their defaults unless explicitly set
        numeric_env = {
            "llm_temperature": "LLM_TEMPERATURE",
            "max_tool_steps": "MAX_TOOL_STEPS",
            "conversation_idle_ttl_seconds": "CONVERSATION_IDLE_TTL_SECONDS",
            "eviction_interval_seconds": "EVICTION_INTERVAL_SECONDS",
        }
        for field_name, env_name in numeric_env.items():
            value = os.getenv(env_name)
            if value:
                data[field_name] = value

        return cls(**data)

    @property
    def groq_configured(self) -> bool:
        return bool(self.groq_api_key)

    @property
    def webhook_secret_configured(self) -> bool:
        return bool(self.webhook_secret)

    def get_unit_search_model(self) -> str:
        """Model used by the unit search backend."""
        return self.unit_search_model or self.groq_model
