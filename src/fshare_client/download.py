import asyncio
import logging
import posixpath
from typing import BinaryIO
from urllib.parse import unquote, urlsplit

import httpx

from fshare_client.constants import DEFAULT_READ_SIZE
from fshare_client.utils import TransferMonitor

logger = logging.getLogger(__name__)


async def save_response(
    response: httpx.Response,
    fileobj: BinaryIO,
    chunk_size: int = DEFAULT_READ_SIZE,
) -> int:
    """
    Stream the body of a download response into a binary file object.

    Args:
        response: Streamed httpx.Response returned by ``Client.download``
        fileobj: Destination opened in binary mode
        chunk_size: Size of each read from the response

    Returns:
        Number of bytes written
    """
    try:
        total_bytes = int(response.headers.get("Content-Length", 0))
    except ValueError:
        total_bytes = 0
    monitor = TransferMonitor(total_bytes=total_bytes)
    monitor.start()

    try:
        async for chunk in response.aiter_bytes(chunk_size=chunk_size):
            await asyncio.to_thread(fileobj.write, chunk)
            monitor.chunk_completed(len(chunk))
    finally:
        await response.aclose()

    await asyncio.to_thread(fileobj.flush)
    logger.info(f"Download finished | {monitor.progress()}")
    return monitor.transferred


def remote_name(url: str | httpx.URL) -> str:
    """
    Derive a local file name from the last segment of a URL path.

    Raises:
        ValueError: If the URL path has no file name
    """
    name = posixpath.basename(unquote(urlsplit(str(url)).path))
    if not name:
        raise ValueError(f"Cannot derive a file name from {url}")
    return name
