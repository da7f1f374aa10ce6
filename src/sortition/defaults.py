"""Centralized configurable defaults for sortition.

All tunable parameters in one place. Each can be overridden through the
environment of the node process.
"""

from __future__ import annotations

import os

# Worker pool
POOL_SIZE = int(os.environ.get("SORTITION_POOL_SIZE", "8"))
BATCH_SIZE = int(os.environ.get("SORTITION_BATCH_SIZE", "1024"))  # tickets per work item

# Stake snapshot offset (blocks subtracted from the sortition height)
LOOKBACK_BLOCKS = int(os.environ.get("SORTITION_LOOKBACK_BLOCKS", "10"))

# Messages at or below this height are trusted without verification
BOOTSTRAP_HEIGHT = int(os.environ.get("SORTITION_BOOTSTRAP_HEIGHT", "10"))

# Seconds a single round may spend in the pool (unset = no deadline)
_timeout = os.environ.get("SORTITION_ROUND_TIMEOUT")
ROUND_TIMEOUT: float | None = float(_timeout) if _timeout else None

# Committee discriminator for the single lottery type
COMMITTEE = 0
