"""
Channel zapping over the filtered view.
"""
from typing import Optional

NO_SELECTION = -1


def zap(direction: int, filtered_count: int, current_index: Optional[int]) -> int:
    """
    Step to the next (+1) or previous (-1) channel, wrapping at both ends.
    
    With an empty view the current index is returned unchanged. A missing
    or negative current index counts as 0.
    """
    if filtered_count <= 0:
        return NO_SELECTION if current_index is None else current_index
    if current_index is None or current_index < 0:
        current_index = 0
    return (current_index + direction) % filtered_count
