"""Service layer for the Nosbot curation pipeline."""

from typing import Protocol


class SupportsClose(Protocol):
    """Protocol describing async resources that must be released."""

    async def close(self) -> None:
        """Release any acquired resources."""


__all__ = ["SupportsClose"]
