"""Runtime configuration for a sortition node."""

from __future__ import annotations

import os
from dataclasses import dataclass

from . import defaults


@dataclass
class SortitionConfig:
    """Configuration for sortition and sort message verification.

    Every field has a default from :mod:`sortition.defaults`, so callers can
    start with ``SortitionConfig()`` and override as needed.
    """

    pool_size: int = defaults.POOL_SIZE
    batch_size: int = defaults.BATCH_SIZE
    lookback_blocks: int = defaults.LOOKBACK_BLOCKS
    bootstrap_height: int = defaults.BOOTSTRAP_HEIGHT
    round_timeout: float | None = defaults.ROUND_TIMEOUT
    committee: int = defaults.COMMITTEE

    def __post_init__(self):
        if self.pool_size < 1:
            raise ValueError(f"pool_size must be positive, got {self.pool_size}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.lookback_blocks < 0:
            raise ValueError(f"lookback_blocks must be non-negative, got {self.lookback_blocks}")

    @classmethod
    def from_env(cls) -> SortitionConfig:
        """Build a config from the current environment.

        Unlike the module-level defaults, which are read once at import,
        this re-reads the ``SORTITION_*`` variables on every call.
        """
        timeout = os.environ.get("SORTITION_ROUND_TIMEOUT")
        return cls(
            pool_size=int(os.environ.get("SORTITION_POOL_SIZE", defaults.POOL_SIZE)),
            batch_size=int(os.environ.get("SORTITION_BATCH_SIZE", defaults.BATCH_SIZE)),
            lookback_blocks=int(os.environ.get("SORTITION_LOOKBACK_BLOCKS", defaults.LOOKBACK_BLOCKS)),
            bootstrap_height=int(os.environ.get("SORTITION_BOOTSTRAP_HEIGHT", defaults.BOOTSTRAP_HEIGHT)),
            round_timeout=float(timeout) if timeout else None,
        )

    def snapshot_height(self, height: int) -> int:
        """Height at which ticket counts are read for a sortition at ``height``."""
        return max(height - self.lookback_blocks, 0)
