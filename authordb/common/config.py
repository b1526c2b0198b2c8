"""Common configuration classes."""

from __future__ import annotations

import logging
from enum import Enum
from logging.handlers import RotatingFileHandler
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class BaseConfig(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
        from_attributes=True,
    )


class SinkFormat(str, Enum):
    """Supported output formats."""

    PARQUET = "parquet"
    ARROW = "arrow"


class SourceConfig(BaseConfig):
    """Input table configuration."""

    path: str = Field(
        ...,
        min_length=1,
        description="Path to the input CSV file",
    )
    encoding: str = Field(
        default="utf-8",
        description="Text encoding of the input",
    )
    delimiter: str = Field(
        default=",",
        min_length=1,
        max_length=1,
        description="Field delimiter",
    )
    strict_field_count: bool = Field(
        default=True,
        description="Require every record to have as many fields as the first",
    )
    lazy_quotes: bool = Field(
        default=False,
        description='Accept a bare " inside a field that is not quoted',
    )


class SinkConfig(BaseConfig):
    """Output database configuration."""

    path: str = Field(
        ...,
        min_length=1,
        description="Path of the database file to create",
    )
    format: SinkFormat = Field(
        default=SinkFormat.PARQUET,
        description="Output file format",
    )
    batch_size: int = Field(
        default=4096,
        ge=1,
        description="Records buffered per written batch",
    )
    compression: str | None = Field(
        default="snappy",
        description="Parquet compression codec",
    )


class LoggingConfig(BaseConfig):
    """Logging configuration."""

    level: str = Field(
        default="INFO",
        description="Root log level",
    )
    format: str = Field(
        default=DEFAULT_LOG_FORMAT,
        description="Log record format",
    )
    filename: str | None = Field(
        default=None,
        description="Optional rotating log file",
    )
    max_bytes: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Rotate the log file after this many bytes",
    )
    backup_count: int = Field(
        default=5,
        ge=0,
        description="Rotated log files to keep",
    )

    def configure(self) -> None:
        """Setup the root logger."""
        logging.basicConfig(level=self.level.upper(), format=self.format, force=True)

        if self.filename:
            handler = RotatingFileHandler(
                filename=self.filename,
                maxBytes=self.max_bytes,
                backupCount=self.backup_count,
            )
            handler.setFormatter(logging.Formatter(self.format))
            logging.getLogger().addHandler(handler)


class RootConfig(BaseConfig):
    """Root configuration."""

    source: SourceConfig = Field(
        ...,
        description="Input configuration",
    )
    sink: SinkConfig = Field(
        ...,
        description="Output configuration",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )

    @classmethod
    def from_dict(cls, **config: Any) -> RootConfig:
        """Create RootConfig from dictionary."""
        try:
            return cls.model_validate(config)
        except ValidationError as e:
            raise ValueError(f"Invalid root configuration: {e}") from e


TConf = TypeVar("TConf", bound=BaseConfig)
