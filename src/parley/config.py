"""Configuration settings for the application."""

import sys
from enum import Enum

from pydantic_settings import BaseSettings


class PlanningStrategy(str, Enum):
    """How the planner asks the model for a tool invocation."""

    TEXT = "text"  # free-text prompt, JSON extracted from the reply
    SCHEMA = "schema"  # native function-calling with tool descriptors


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # Define the settings with default values and types
    # These will be loaded from environment variables or a .env file if not provided
    LOG_LEVEL: str = "warning"  # Options: debug, info, warning, error, critical

    # Oracle (Ollama) configuration
    OLLAMA_HOST: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "gpt-oss:20b"
    REQUEST_TIMEOUT: float = 120.0

    # Output interpretation
    PLANNER: PlanningStrategy = PlanningStrategy.TEXT
    EXTRACTOR: str = "first-last"  # Options: first-last, balanced

    # Trivia quiz
    QUIZ_QUESTIONS: int = 3
    QUESTION_MAX_ATTEMPTS: int = 6

    # Todo tool server
    TODO_DATA_FILE: str = "todos.json"
    TODO_SERVER_COMMAND: str = sys.executable

    class Config:
        """Configuration for Pydantic settings."""

        # Load environment variables from a .env file
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
