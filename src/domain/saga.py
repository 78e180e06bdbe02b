"""
Compensation stack for multi-store workflows.

Undo steps are pushed as forward steps succeed and run in reverse order
on failure. Each step is best-effort: a failing undo is logged and the
remaining steps still run.
"""

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class Compensations:
    def __init__(self) -> None:
        self._steps: list[tuple[str, Callable[[], None]]] = []

    def push(self, description: str, undo: Callable[[], None]) -> None:
        self._steps.append((description, undo))

    def clear(self) -> None:
        """Forget all steps once the forward path has committed."""
        self._steps.clear()

    def run(self) -> list[str]:
        """
        Execute pending undo steps newest first.

        Returns:
            Descriptions of steps that failed
        """
        failed = []
        while self._steps:
            description, undo = self._steps.pop()
            try:
                undo()
            except Exception:
                logger.exception("Compensation failed: %s", description)
                failed.append(description)
            else:
                logger.info("Compensation applied: %s", description)
        return failed

    def __len__(self) -> int:
        return len(self._steps)
