"""Exception types raised by the resolution and client layers."""


class MultichainError(Exception):
    """Base class for errors raised by this package."""


class UnknownNetworkError(MultichainError, ValueError):
    """Raised for an unrecognised network name when strict resolution is on."""

    def __init__(self, network: str, supported: list[str]):
        self.network = network
        self.supported = supported
        super().__init__(
            f"Unknown network {network!r}. Try one of: {', '.join(supported)}"
        )


class ClientConstructionError(MultichainError):
    """An RPC client could not be built for the requested chain."""

    def __init__(self, chain_id: int, reason: str):
        self.chain_id = chain_id
        self.reason = reason
        super().__init__(f"Cannot create RPC client for chain {chain_id}: {reason}")


class RpcResponseError(MultichainError):
    """A vendor endpoint answered with an error object or an unusable payload."""
