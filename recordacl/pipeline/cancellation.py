"""Cancellation tokens for evaluation contexts.

Every load/evaluate run is handed a token. The run checks it once when
its awaits complete and drops its result if the token was cancelled in
the meantime, so a torn-down or refreshed context never receives a
stale write.
"""

import itertools
from typing import Optional

_token_ids = itertools.count(1)


class CancellationToken:
    """A one-way cancellation flag scoped to a single run."""

    def __init__(self, reason: Optional[str] = None):
        self.token_id = next(_token_ids)
        self._cancelled = False
        self.reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: Optional[str] = None) -> None:
        if not self._cancelled:
            self._cancelled = True
            self.reason = reason

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"<CancellationToken {self.token_id} {state}>"
