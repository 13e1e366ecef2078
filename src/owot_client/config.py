"""Client configuration."""

import os
from dataclasses import dataclass, field, replace

from owot_client.core.constants import (
    BENIGN_REJECTION,
    DEFAULT_BASE_URL,
    MAX_EDITS_PER_WRITE,
    MAX_FETCH_AREA,
)


@dataclass(frozen=True)
class ClientConfig:
    """
    Tunables for talking to a world server.
    
    Attributes:
        base_url: Websocket root; the world name is appended as a path
        rate_limit_ms: Delay before resubmitting edits that are still pending
        max_batch: Most edits sent in one write message
        max_fetch_area: Most chunks the server returns for one fetch rectangle
        region_pacing: Seconds to wait between the sub-requests of a split fetch
        read_timeout: Seconds to wait for a chunk read (None waits forever)
        drop_rejections: Rejection reasons that discard the edit instead of retrying
        benign_rejection: Rejection reason that is expected and not logged
    """
    base_url: str = DEFAULT_BASE_URL
    rate_limit_ms: int = 1000
    max_batch: int = MAX_EDITS_PER_WRITE
    max_fetch_area: int = MAX_FETCH_AREA
    region_pacing: float = 0.1
    read_timeout: float | None = None
    drop_rejections: frozenset[int] = field(default_factory=frozenset)
    benign_rejection: int = BENIGN_REJECTION
    
    def __post_init__(self) -> None:
        if not 1 <= self.max_batch <= MAX_EDITS_PER_WRITE:
            raise ValueError(f"max_batch must be 1-{MAX_EDITS_PER_WRITE}, got {self.max_batch}")
        if self.max_fetch_area < 1:
            raise ValueError(f"max_fetch_area must be positive, got {self.max_fetch_area}")
        if self.rate_limit_ms < 0:
            raise ValueError(f"rate_limit_ms must not be negative, got {self.rate_limit_ms}")
    
    @classmethod
    def from_env(cls, **overrides) -> "ClientConfig":
        """
        Build a config from ``OWOT_*`` environment variables.
        
        Recognized: OWOT_BASE_URL, OWOT_RATE_LIMIT_MS, OWOT_READ_TIMEOUT,
        OWOT_REGION_PACING. Keyword overrides win over the environment.
        """
        config = cls()
        if base_url := os.environ.get("OWOT_BASE_URL"):
            config = replace(config, base_url=base_url.rstrip("/"))
        if rate_limit := os.environ.get("OWOT_RATE_LIMIT_MS"):
            config = replace(config, rate_limit_ms=int(rate_limit))
        if read_timeout := os.environ.get("OWOT_READ_TIMEOUT"):
            config = replace(config, read_timeout=float(read_timeout))
        if pacing := os.environ.get("OWOT_REGION_PACING"):
            config = replace(config, region_pacing=float(pacing))
        return replace(config, **overrides)
    
    def world_url(self, world: str = "") -> str:
        """Websocket URL for a world; the empty name is the front page world."""
        world = world.strip("/")
        if world:
            return f"{self.base_url}/{world}/ws/"
        return f"{self.base_url}/ws/"
