"""
Bounded record of swaps that already produced a notification.
Owned by the application and injected into the filter engine.
"""
import logging
from collections import OrderedDict
from typing import Dict, Hashable, Optional

logger = logging.getLogger(__name__)

GLOBAL_SCOPE = "__global__"


class ProcessedSwapSet:
    """
    Insertion-ordered set of swap identity keys, bounded per scope.

    A scope is an independent namespace (the dispatcher uses one per user).
    When a scope grows past max_size, the oldest inserted keys are dropped
    until trim_to keys remain. Process lifetime only; nothing is persisted,
    so a restart can cause a few duplicate alerts but never a missed one.
    """

    def __init__(self, max_size: int = 1000, trim_to: int = 500):
        if trim_to > max_size:
            raise ValueError("trim_to must not exceed max_size")
        self.max_size = max_size
        self.trim_to = trim_to
        self._scopes: Dict[Hashable, "OrderedDict[str, None]"] = {}

    def _scope(self, scope: Optional[Hashable]) -> "OrderedDict[str, None]":
        key = GLOBAL_SCOPE if scope is None else scope
        if key not in self._scopes:
            self._scopes[key] = OrderedDict()
        return self._scopes[key]

    def contains(self, swap_key: str, scope: Optional[Hashable] = None) -> bool:
        """Check whether a swap key was already committed in this scope."""
        key = GLOBAL_SCOPE if scope is None else scope
        entries = self._scopes.get(key)
        return entries is not None and swap_key in entries

    def add(self, swap_key: str, scope: Optional[Hashable] = None):
        """Commit a swap key, trimming the oldest entries past the bound."""
        entries = self._scope(scope)
        entries[swap_key] = None

        if len(entries) > self.max_size:
            dropped = 0
            while len(entries) > self.trim_to:
                entries.popitem(last=False)
                dropped += 1
            logger.debug(f"Trimmed {dropped} processed swap keys (scope={scope})")

    def size(self, scope: Optional[Hashable] = None) -> int:
        key = GLOBAL_SCOPE if scope is None else scope
        entries = self._scopes.get(key)
        return len(entries) if entries else 0

    def __contains__(self, swap_key: str) -> bool:
        return self.contains(swap_key)

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._scopes.values())
