"""
Fallback Chain Module
Sequential first-success runner shared by submission and asset probing.
"""

import logging
from typing import Any, Callable, List, Optional, Sequence, Tuple

from .errors import ChainExhaustedError

logger = logging.getLogger(__name__)

Step = Tuple[str, Callable[[], Any]]


class FallbackChain:
    """Runs labelled steps in order and stops at the first one that does not raise."""

    def __init__(self, name: str):
        self.name = name
        self.failures: List[Tuple[str, Exception]] = []

    def run(self, steps: Sequence[Step]) -> Tuple[str, Any]:
        """
        Execute steps until one succeeds.

        Args:
            steps: (label, callable) pairs, tried strictly in order

        Returns:
            (label, value) of the first successful step

        Raises:
            ChainExhaustedError: if every step raised
        """
        self.failures = []
        last_error: Optional[Exception] = None

        for index, (label, step) in enumerate(steps, start=1):
            try:
                value = step()
            except Exception as e:
                last_error = e
                self.failures.append((label, e))
                logger.info(f"[{self.name}] attempt {index}/{len(steps)} {label!r} failed: {e}")
                continue
            logger.info(f"[{self.name}] attempt {index}/{len(steps)} {label!r} succeeded")
            return label, value

        raise ChainExhaustedError(self.name, len(steps), last_error)
