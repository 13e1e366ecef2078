"""Exceptions raised by the world client."""


class OwotError(Exception):
    """Base class for all client errors."""


class ProtocolError(OwotError):
    """The server sent a payload the client cannot interpret."""


class ServerError(OwotError):
    """An ``error`` message reported by the server."""
    
    def __init__(self, code: str, message: str):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


class ReadTimeoutError(OwotError):
    """A chunk read did not get a response within the configured timeout."""
    
    def __init__(self, chunks: list[tuple[int, int]], timeout: float):
        super().__init__(f"No response for {len(chunks)} chunk(s) after {timeout}s")
        self.chunks = chunks
        self.timeout = timeout


class ConnectionClosedError(OwotError):
    """The transport closed. There is no reconnect, so this is fatal."""
    
    def __init__(self, code: int | None = None, reason: str = ""):
        super().__init__(f"Connection closed (code={code}, reason={reason!r})")
        self.code = code
        self.reason = reason
