"""
Channel catalog data models.
"""
from pydantic import BaseModel, ConfigDict, Field


ALL_CATEGORY = "All"
DEFAULT_CATEGORY = "Others"
DEFAULT_NAME = "Unknown"
MAX_NAME_LEN = 200

STREAM_SCHEMES = frozenset({"http", "https", "rtsp", "rtmp", "mms", "mmsh"})
LOGO_SCHEMES = frozenset({"http", "https"})


class Channel(BaseModel):
    """One playable playlist entry. Immutable once parsed."""
    model_config = ConfigDict(frozen=True)
    
    name: str = DEFAULT_NAME
    category: str = DEFAULT_CATEGORY
    logo_url: str = ""
    stream_url: str


class ParseResult(BaseModel):
    """Output of the playlist parser."""
    model_config = ConfigDict(frozen=True)
    
    channels: tuple[Channel, ...] = ()
    categories: tuple[str, ...] = ()


class FilterState(BaseModel):
    """Category + search filter applied to the catalog."""
    category: str = ALL_CATEGORY
    search_term: str = ""
    
    def matches(self, channel: Channel) -> bool:
        if self.category != ALL_CATEGORY and channel.category != self.category:
            return False
        if self.search_term and self.search_term.lower() not in channel.name.lower():
            return False
        return True


class ChannelView(BaseModel):
    """A channel as seen through the filtered view."""
    index: int
    name: str
    category: str
    logo_url: str = ""
    stream_url: str
    has_logo: bool = False


class ChannelListResponse(BaseModel):
    """Filtered channel list response."""
    channels: list[ChannelView] = Field(default_factory=list)
    total: int
    category: str
    search: str
