"""Ordering rules for assets and folders.

Assets are listed newest capture first; folders oldest first. Both use a
deterministic tie-break so repeated listings never reshuffle.
"""

from __future__ import annotations

from collections.abc import Iterable

from core.models import Asset, Folder


class SortService:
    """Provides the canonical orderings used across the app."""

    def sort_assets(self, assets: Iterable[Asset]) -> list[Asset]:
        """Return `assets` ordered by `captured_at` descending.

        Args:
            assets: Assets in any order, e.g. straight from the asset source.
        """
        # Two stable passes: ref ascending, then capture time descending
        ordered = sorted(assets, key=lambda a: a.asset_ref)
        ordered.sort(key=lambda a: a.captured_at, reverse=True)
        return ordered

    def sort_folders(self, folders: Iterable[Folder]) -> list[Folder]:
        """Return `folders` ordered by `created_at` ascending, ties by id."""
        return sorted(folders, key=lambda f: (f.created_at, f.id))

    def dedupe_assets(self, assets: Iterable[Asset]) -> list[Asset]:
        """Drop repeated asset refs, keeping the first occurrence."""
        seen: set[str] = set()
        result: list[Asset] = []
        for asset in assets:
            if asset.asset_ref in seen:
                continue
            seen.add(asset.asset_ref)
            result.append(asset)
        return result
