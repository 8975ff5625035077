import logging
from typing import Annotated, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from pii_anonymizer.anonymizer import DEFAULT_MAX_TEXT_LENGTH
from pii_anonymizer.detector import DEFAULT_ENTITIES
from pii_anonymizer.resolver import DEFAULT_TYPE_PRIORITY


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables and a .env file.

    Attributes:
        openai_api_key (str): OPENAI_API_KEY
        openai_model (str): OPENAI_MODEL
        max_text_length (int): MAX_TEXT_LENGTH, longest message accepted for anonymization
        entities (tuple): PII_ENTITIES, comma-separated Presidio entity types
        language (str): PII_LANGUAGE
        score_threshold (float): PII_SCORE_THRESHOLD, minimum detector confidence
        type_priority (tuple): PII_TYPE_PRIORITY, tie-break order for overlapping spans
        log_level (str): LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    openai_api_key: Optional[str] = Field(default=None, validation_alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", validation_alias="OPENAI_MODEL")
    max_text_length: int = Field(default=DEFAULT_MAX_TEXT_LENGTH, validation_alias="MAX_TEXT_LENGTH")
    entities: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_ENTITIES, validation_alias="PII_ENTITIES"
    )
    language: str = Field(default="en", validation_alias="PII_LANGUAGE")
    score_threshold: float = Field(default=0.35, validation_alias="PII_SCORE_THRESHOLD")
    type_priority: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_TYPE_PRIORITY, validation_alias="PII_TYPE_PRIORITY"
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @field_validator("entities", "type_priority", mode="before")
    @classmethod
    def _split_list(cls, value, info):
        # Comma-separated in the environment; an empty list keeps the default.
        if isinstance(value, str):
            items = tuple(item.strip() for item in value.split(",") if item.strip())
            return items or cls.model_fields[info.field_name].default
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value):
        return value.upper()

    @classmethod
    def from_env(cls, env=None, dotenv_path=None):
        """
        Build settings from environment variables.

        Args:
            env (dict): Variables to read instead of ``os.environ``; when given,
                        no .env file is loaded.
            dotenv_path (str): .env file to read instead of ``./.env``.

        Raises:
            pydantic.ValidationError: If a variable cannot be parsed. It is a
                ValueError and its message names the variable.
        """
        if env is not None:
            return cls.model_validate({key: value for key, value in env.items() if value != ""})
        return cls(_env_file=dotenv_path or ".env")


def configure_logging(level="INFO"):
    """Set up root logging for command-line use."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logging.getLogger("presidio-analyzer").setLevel(logging.WARNING)
