"""Chapter number assignment with collision resolution."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class ChapterNumberer:
    """Assign unique, strictly increasing chapter numbers in reading order.

    Explicit numbers are honoured unless they are not greater than the
    previously assigned number; such a chapter moves to the next unused
    integer and a warning is recorded.
    """

    def __init__(self, warnings: list[str]) -> None:
        self._warnings = warnings
        self._last = 0
        self._offset = 0
        self._shift_pending = False

    @property
    def last(self) -> int:
        return self._last

    @property
    def offset(self) -> int:
        """How far explicit numbers were moved to make room for a leading chapter."""

        return self._offset

    def reserve_leading(self) -> int:
        """Number a chapter inserted ahead of the explicitly numbered ones.

        If the first explicit number then overlaps the inserted chapter, that
        number and every explicit number after it move up by the same amount,
        without a collision warning for each.
        """

        self._shift_pending = True
        return self.assign()

    def assign(self, explicit: int | None = None, *, label: str | None = None) -> int:
        if explicit is None:
            self._last += 1
            return self._last

        if self._shift_pending:
            self._shift_pending = False
            if explicit <= self._last:
                self._offset = self._last + 1 - explicit
                logger.debug("Shifting explicit chapter numbers by %d", self._offset)
        requested = explicit
        explicit += self._offset

        if explicit <= self._last:
            resolved = self._last + 1
            where = f" ('{label}')" if label else ""
            message = (
                f"Chapter number {requested}{where} collides with an earlier chapter; "
                f"renumbered to {resolved}"
            )
            logger.warning(message)
            self._warnings.append(message)
            self._last = resolved
            return resolved

        self._last = explicit
        return explicit
