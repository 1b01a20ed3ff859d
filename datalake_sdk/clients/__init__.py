from abc import ABC, abstractmethod


class ClientInterface(ABC):
    """Base interface for clients that hold remote connections.

    Implementations create their transport in :meth:`load` and release it in
    :meth:`close`.
    """

    @abstractmethod
    async def load(self):
        """Establish the client connection."""
        pass

    @abstractmethod
    async def close(self):
        """Close the client connection and clean up any resources it holds."""
        pass
