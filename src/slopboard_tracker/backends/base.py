"""Abstract base class for delivery backends."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..grouping import GroupedSession
from ..models.session import Session
from ..types import LanguageDict


class DeliveryBackend(ABC):
    """
    Abstract interface for the remote session collector.

    Implementations raise :class:`~slopboard_tracker.exceptions.DeliveryError`
    (or a subclass) for every failed send; callers do not distinguish
    network failures from rejected requests.
    """

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        """
        Initialize backend.

        Args:
            api_key: Opaque collector credential (may be set later)
            **kwargs: Backend-specific configuration
        """
        self._api_key = api_key or None

    @property
    def has_credential(self) -> bool:
        """Check if an API key is configured."""
        return bool(self._api_key)

    def set_api_key(self, api_key: Optional[str]) -> None:
        """Replace the credential used for subsequent requests."""
        self._api_key = api_key or None

    @abstractmethod
    async def send_one(self, session: Session) -> None:
        """
        Send a single closed session.

        Raises:
            DeliveryError: If the collector did not accept the session
        """
        pass

    @abstractmethod
    async def send_batch(self, groups: List[GroupedSession]) -> None:
        """
        Send consolidated sessions in one request.

        Raises:
            DeliveryError: If the collector did not accept the batch
        """
        pass

    @abstractmethod
    async def validate_api_key(self, api_key: str) -> bool:
        """Check a key against the collector without storing it."""
        pass

    @abstractmethod
    async def get_languages(self) -> List[LanguageDict]:
        """Fetch the collector's language table."""
        pass

    async def aclose(self) -> None:
        """Release network resources."""
        pass
