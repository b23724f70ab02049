"""
Size-capped HTTP downloads shared by the playlist and logo fetchers.
"""
import httpx


class SizeExceededError(Exception):
    """Response body grew past the allowed size."""
    
    def __init__(self, url: str, limit: int):
        super().__init__(f"Response from {url} exceeds {limit} bytes")
        self.url = url
        self.limit = limit


def build_client(
    user_agent: str,
    timeout: float,
    max_redirects: int,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an AsyncClient with our User-Agent and redirect policy."""
    return httpx.AsyncClient(
        headers={"User-Agent": user_agent},
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        max_redirects=max_redirects,
        transport=transport,
    )


async def fetch_limited(client: httpx.AsyncClient, url: str, max_bytes: int) -> bytes:
    """
    GET url and return the body, aborting once it passes max_bytes.
    
    Raises:
        httpx.HTTPError: network failure or non-2xx status
        SizeExceededError: body larger than max_bytes
    """
    async with client.stream("GET", url) as response:
        response.raise_for_status()
        
        declared = response.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > max_bytes:
            raise SizeExceededError(url, max_bytes)
        
        chunks = []
        received = 0
        async for chunk in response.aiter_bytes():
            received += len(chunk)
            if received > max_bytes:
                raise SizeExceededError(url, max_bytes)
            chunks.append(chunk)
        return b"".join(chunks)
