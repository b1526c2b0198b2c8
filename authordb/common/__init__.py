from .config import LoggingConfig, RootConfig, SinkConfig, SinkFormat, SourceConfig
from .errors import (
    BuildError,
    InputAccessError,
    InputChangedError,
    MalformedInputError,
    MalformedRowError,
    OutputAccessError,
    SinkError,
)

__all__ = [
    "BuildError",
    "InputAccessError",
    "InputChangedError",
    "LoggingConfig",
    "MalformedInputError",
    "MalformedRowError",
    "OutputAccessError",
    "RootConfig",
    "SinkConfig",
    "SinkError",
    "SinkFormat",
    "SourceConfig",
]
