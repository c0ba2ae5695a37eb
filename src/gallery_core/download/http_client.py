"""
Shared aiohttp session factory.

One ClientSession is shared by the listing client and the media downloader;
the connection pool is sized to the download concurrency.
"""

import aiohttp

# The image CDN rejects requests that don't look like they came from the web client.
DEFAULT_MEDIA_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_11_2) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/47.0.2526.106 Safari/537.36"
    ),
    "Referer": "https://app.groupme.com/chats",
}


def create_session(
    max_connections: int = 100,
    max_connections_per_host: int = 10,
    enable_ssl: bool = True,
    timeout_total: int = 300,
    timeout_connect: int = 30,
    timeout_sock_read: int = 60,
) -> aiohttp.ClientSession:
    """
    Create aiohttp ClientSession with connection pooling and default timeouts.

    Per-request timeouts (the per-item download deadline) override the
    session defaults.

    Args:
        max_connections: Total connection pool size (default: 100)
        max_connections_per_host: Per-host connection limit (default: 10)
        enable_ssl: Enable SSL verification (default: True)
        timeout_total: Total timeout in seconds (default: 300)
        timeout_connect: Connection timeout in seconds (default: 30)
        timeout_sock_read: Socket read timeout in seconds (default: 60)

    Returns:
        Configured aiohttp.ClientSession

    Note:
        Caller is responsible for session lifecycle management:

        async with create_session(max_connections_per_host=3) as session:
            ...
    """
    connector = aiohttp.TCPConnector(
        limit=max_connections,
        limit_per_host=max_connections_per_host,
        ssl=enable_ssl,
        ttl_dns_cache=300,
    )

    timeout = aiohttp.ClientTimeout(
        total=timeout_total,
        connect=timeout_connect,
        sock_read=timeout_sock_read,
    )

    return aiohttp.ClientSession(connector=connector, timeout=timeout)


__all__ = [
    "DEFAULT_MEDIA_HEADERS",
    "create_session",
]
