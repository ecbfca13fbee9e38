"""
Collected build-time diagnostics.
"""

import logging
from typing import Iterator, List, Optional

from .models import Diagnostic

logger = logging.getLogger(__name__)


class Diagnostics:
    """Sink for non-fatal issues found while compiling an API description.

    Every entry is kept for the caller and also logged, so builds stay
    observable in tests without capturing log output.
    """

    def __init__(self) -> None:
        self._entries: List[Diagnostic] = []

    def warn(self, message: str, location: Optional[str] = None) -> None:
        diagnostic = Diagnostic(level="warning", message=message, location=location)
        self._entries.append(diagnostic)
        logger.warning(str(diagnostic))

    @property
    def entries(self) -> List[Diagnostic]:
        return list(self._entries)

    def messages(self) -> List[str]:
        return [str(d) for d in self._entries]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
