"""
M3U Parser Service.
Turns raw playlist bytes into an ordered channel list plus its categories.
"""
import logging
import re
from typing import Optional
from urllib.parse import urlsplit

from livetv.models.channel import (
    ALL_CATEGORY,
    DEFAULT_CATEGORY,
    DEFAULT_NAME,
    MAX_NAME_LEN,
    STREAM_SCHEMES,
    Channel,
    ParseResult,
)

logger = logging.getLogger(__name__)

# "#EXTINF:<duration> <attrs>,<name>" - the greedy attrs group leaves the
# name as everything after the last comma
EXTINF_PATTERN = re.compile(r'#EXTINF\s*:\s*(-?\d+)\s*(.*),\s*(.*)')
LOGO_PATTERN = re.compile(r'tvg-logo\s*=\s*"([^"]*)"')
GROUP_PATTERN = re.compile(r'group-title\s*=\s*"([^"]*)"')
LINE_SPLIT = re.compile(r'[\r\n]+')


def is_valid_url(url: str, schemes=STREAM_SCHEMES) -> bool:
    """Check that url is well formed and uses one of the given schemes."""
    if not url or any(ch.isspace() for ch in url):
        return False
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme.lower() in schemes and bool(parts.netloc)


class M3UParser:
    """Parse M3U/M3U8 playlists."""
    
    def parse(self, data: bytes | str) -> ParseResult:
        """
        Parse playlist content.
        
        Never raises: undecodable or malformed input just yields fewer
        (possibly zero) channels.
        
        Args:
            data: Raw playlist bytes (UTF-8) or already decoded text
            
        Returns:
            ParseResult with channels in playlist order and the sorted
            category list with "All" prepended
        """
        if isinstance(data, bytes):
            text = data.decode('utf-8', errors='replace')
        else:
            text = data or ''
        
        channels: list[Channel] = []
        pending: Optional[dict] = None
        
        for raw_line in LINE_SPLIT.split(text):
            line = raw_line.strip()
            if not line:
                continue
            
            if line.startswith('#EXTINF'):
                # A second EXTINF before any URL replaces the first
                pending = self._parse_extinf(line)
            
            elif not line.startswith('#'):
                if pending is None:
                    continue
                if is_valid_url(line):
                    channels.append(Channel(stream_url=line, **pending))
                else:
                    logger.debug(f"Dropping entry with unsupported stream URL: {line[:80]}")
                pending = None
        
        if pending is not None:
            logger.debug(f"Dropping trailing entry without stream URL: {pending['name']}")
        
        categories = sorted({ch.category for ch in channels})
        if channels:
            categories.insert(0, ALL_CATEGORY)
        
        logger.info(f"Parsed {len(channels)} channels in {max(len(categories) - 1, 0)} categories")
        
        return ParseResult(channels=tuple(channels), categories=tuple(categories))
    
    def _parse_extinf(self, line: str) -> dict:
        """Extract name, logo and group from an EXTINF line."""
        name = ''
        logo_url = ''
        category = ''
        
        match = EXTINF_PATTERN.match(line)
        if match:
            attrs = match.group(2)
            name = match.group(3).strip()
            
            logo_match = LOGO_PATTERN.search(attrs)
            if logo_match:
                logo_url = logo_match.group(1).strip()
            
            group_match = GROUP_PATTERN.search(attrs)
            if group_match:
                category = group_match.group(1).strip()
        else:
            comma = line.rfind(',')
            if comma >= 0:
                name = line[comma + 1:].strip()
        
        return {
            'name': name[:MAX_NAME_LEN] or DEFAULT_NAME,
            'category': category or DEFAULT_CATEGORY,
            'logo_url': logo_url,
        }


def parse_playlist(data: bytes | str) -> ParseResult:
    """Parse playlist content with a default parser."""
    return M3UParser().parse(data)
