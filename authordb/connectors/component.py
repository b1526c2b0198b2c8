"""Base connector component."""

from __future__ import annotations

import logging
from typing import Any

from authordb.common.component import ComponentFactory

logger = logging.getLogger(__name__)


class ConnectorComponent(ComponentFactory):
    """Base class for data connectors."""

    async def connect(self) -> Any:
        """Establish connection."""
        raise NotImplementedError

    async def disconnect(self) -> None:
        """Close connection resources."""
        raise NotImplementedError

    async def __aenter__(self):
        """Enter context."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit context."""
        await self.disconnect()
