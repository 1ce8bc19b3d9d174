"""
Application configuration using Pydantic Settings
"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings
from typing import List, Literal, Optional


VERSION = "0.3.0"

DataType = Literal["string", "integer", "float", "boolean", "factor"]
DecodeMode = Literal["lines", "stream"]

DEFAULT_SKY_HOST = "localhost"
DEFAULT_SKY_PORT = 8585
DEFAULT_TABLE = "gharchive"
DEFAULT_ARCHIVE_URL = "http://data.githubarchive.org"
DEFAULT_DECODE_MODE = "lines"
DEFAULT_QUEUE_SIZE = 5


class PropertySpec(BaseModel):
    """A property to create on a freshly provisioned Sky table"""

    name: str = Field(..., min_length=1)
    dimension: bool = True
    data_type: DataType = "factor"

    class Config:
        frozen = True


def default_properties() -> List[PropertySpec]:
    return [
        PropertySpec(name="username", dimension=False, data_type="string"),
        PropertySpec(name="action", dimension=True, data_type="factor"),
        PropertySpec(name="language", dimension=True, data_type="factor"),
        PropertySpec(name="forks", dimension=True, data_type="integer"),
        PropertySpec(name="watchers", dimension=True, data_type="integer"),
        PropertySpec(name="stargazers", dimension=True, data_type="integer"),
        PropertySpec(name="size", dimension=True, data_type="integer"),
    ]


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Sky server
    SKY_HOST: str = DEFAULT_SKY_HOST
    SKY_PORT: int = Field(DEFAULT_SKY_PORT, ge=1, le=65535)
    SKY_TABLE: str = Field(DEFAULT_TABLE, min_length=1)

    # Archive
    ARCHIVE_BASE_URL: str = DEFAULT_ARCHIVE_URL
    DECODE_MODE: DecodeMode = DEFAULT_DECODE_MODE

    # Logging
    LOG_LEVEL: str = "INFO"

    # Pipeline
    QUEUE_SIZE: int = Field(DEFAULT_QUEUE_SIZE, ge=1)

    # Properties created on a new table, as a JSON list in the environment
    PROPERTIES: List[PropertySpec] = Field(default_factory=default_properties)

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


class ImportConfig(BaseModel):
    """
    Resolved configuration for one import run.

    Built once at startup from Settings and command line flags, then
    passed explicitly to provisioning, extraction and delivery.
    """

    host: str = DEFAULT_SKY_HOST
    port: int = Field(DEFAULT_SKY_PORT, ge=1, le=65535)
    table: str = Field(DEFAULT_TABLE, min_length=1)
    overwrite: bool = False
    verbose: bool = False
    archive_url: str = DEFAULT_ARCHIVE_URL
    decode_mode: DecodeMode = DEFAULT_DECODE_MODE
    sequential: bool = False
    use_stream: bool = True
    queue_size: int = Field(DEFAULT_QUEUE_SIZE, ge=1)
    properties: List[PropertySpec] = Field(default_factory=default_properties)

    class Config:
        frozen = True

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None, **overrides) -> "ImportConfig":
        """
        Merge settings defaults with explicit overrides.

        Overrides whose value is None are ignored so that unset command
        line flags fall back to the environment.
        """
        source = source or settings
        values = {
            "host": source.SKY_HOST,
            "port": source.SKY_PORT,
            "table": source.SKY_TABLE,
            "archive_url": source.ARCHIVE_BASE_URL,
            "decode_mode": source.DECODE_MODE,
            "queue_size": source.QUEUE_SIZE,
            "properties": source.PROPERTIES,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


settings = Settings()
