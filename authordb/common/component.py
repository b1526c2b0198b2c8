from __future__ import annotations

from typing import Any, Generic

from authordb.common.config import TConf


class ComponentFactory(Generic[TConf]):
    """Base class for configurable components."""

    # This is a class variable that will be set by subclasses
    _config_type: type[TConf]
    _instance_config: TConf

    def __init__(self, config: TConf) -> None:
        """Initialize with configuration."""
        self._instance_config = config

    @classmethod
    def from_config(cls, config: TConf | dict[str, Any]) -> ComponentFactory:
        """Create a component from a configuration model or dictionary."""
        if isinstance(config, dict):
            config = cls._config_type(**config)
        return cls(config)

    @property
    def config(self) -> TConf:
        """Access the configuration."""
        return self._instance_config
