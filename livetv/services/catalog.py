"""
Channel catalog with category and search filtering.
"""
import logging
from typing import Optional

from livetv.models.channel import ALL_CATEGORY, Channel, FilterState, ParseResult

logger = logging.getLogger(__name__)


class Catalog:
    """
    Owns the parsed channel list.
    
    The channel tuple and its category tuple are swapped together as one
    snapshot, so readers never see a half-replaced catalog. Filtering is a
    derived view and never touches the snapshot.
    """
    
    def __init__(self):
        self._snapshot: tuple[tuple[Channel, ...], tuple[str, ...]] = ((), ())
    
    @property
    def channels(self) -> tuple[Channel, ...]:
        return self._snapshot[0]
    
    @property
    def categories(self) -> tuple[str, ...]:
        return self._snapshot[1]
    
    def __len__(self) -> int:
        return len(self._snapshot[0])
    
    def set_channels(self, channels, categories: Optional[tuple[str, ...]] = None):
        """
        Replace the catalog.
        
        Args:
            channels: New channels in playlist order
            categories: Precomputed category list; derived from channels when omitted
        """
        channels = tuple(channels)
        if categories is None:
            categories = tuple(sorted({ch.category for ch in channels}))
            if channels:
                categories = (ALL_CATEGORY,) + categories
        self._snapshot = (channels, tuple(categories))
        logger.info(f"Catalog replaced: {len(channels)} channels")
    
    def load(self, result: ParseResult):
        """Replace the catalog from a parser result."""
        self.set_channels(result.channels, result.categories)
    
    def has_category(self, category: str) -> bool:
        return category == ALL_CATEGORY or category in self._snapshot[1]
    
    def visible_indices(self, filter_state: FilterState) -> list[int]:
        """Catalog indices visible under the filter, in playlist order."""
        channels = self._snapshot[0]
        return [i for i, ch in enumerate(channels) if filter_state.matches(ch)]
    
    def count(self, filter_state: FilterState) -> int:
        return len(self.visible_indices(filter_state))
    
    def visible_channels(self, filter_state: FilterState) -> list[Channel]:
        channels = self._snapshot[0]
        return [channels[i] for i in self.visible_indices(filter_state)]
