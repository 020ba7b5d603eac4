"""Multi-select state for recent screenshots, decoupled from any UI toolkit.

Views toggle asset refs in and out of the selection; after the unassigned
list changes the selection is reconciled so it never points at screenshots
that have already been filed or deleted.
"""

from __future__ import annotations

from collections.abc import Iterable
import re


class SelectionService:
    """Ordered set of selected asset refs (selection order is preserved)."""

    def __init__(self) -> None:
        self._selected: dict[str, None] = {}

    def __contains__(self, asset_ref: object) -> bool:
        return asset_ref in self._selected

    def __len__(self) -> int:
        return len(self._selected)

    @property
    def is_active(self) -> bool:
        """True while at least one screenshot is selected (selection mode)."""
        return bool(self._selected)

    def selected(self) -> list[str]:
        return list(self._selected)

    def select(self, asset_ref: str) -> None:
        self._selected.setdefault(asset_ref, None)

    def deselect(self, asset_ref: str) -> None:
        self._selected.pop(asset_ref, None)

    def toggle(self, asset_ref: str) -> bool:
        """Flip selection of `asset_ref`. Returns the new selected state."""
        if asset_ref in self._selected:
            del self._selected[asset_ref]
            return False
        self._selected[asset_ref] = None
        return True

    def clear(self) -> None:
        self._selected.clear()

    def apply_regex(self, asset_refs: Iterable[str], regex: str, select: bool) -> None:
        """Select or unselect every ref in `asset_refs` matching `regex`.

        Args:
            asset_refs: Candidate refs, usually the current recent list.
            regex: Regular expression searched within each ref.
            select: If True, add matches; otherwise remove them.
        """
        rx = re.compile(regex)
        for ref in asset_refs:
            if rx.search(ref):
                if select:
                    self.select(ref)
                else:
                    self.deselect(ref)

    def reconcile(self, available_refs: Iterable[str]) -> list[str]:
        """Drop selected refs not in `available_refs`. Returns the dropped refs."""
        available = set(available_refs)
        dropped = [ref for ref in self._selected if ref not in available]
        for ref in dropped:
            del self._selected[ref]
        return dropped
