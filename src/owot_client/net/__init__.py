"""Transport layer."""

from owot_client.net.session import ConnectionSession

__all__ = ["ConnectionSession"]
