import asyncio
from collections.abc import AsyncIterable, AsyncIterator
from typing import BinaryIO

from fshare_client.constants import DEFAULT_BUF_SIZE, DEFAULT_READ_SIZE


async def iter_chunks(
    source: AsyncIterable[bytes], buf_size: int = DEFAULT_BUF_SIZE
) -> AsyncIterator[bytes]:
    """
    Regroup the fragments of a byte stream into buffers of at least ``buf_size``.

    Fragments are accumulated until the running buffer reaches or exceeds
    ``buf_size``, at which point it is yielded whole. The remainder left when
    the source is exhausted is yielded as the last buffer, unless it is empty.

    Args:
        source: Async iterable producing the bytes to regroup, read once in order
        buf_size: Threshold a buffer must reach before it is yielded

    Yields:
        Byte buffers whose concatenation equals the source
    """
    if buf_size <= 0:
        raise ValueError(f"Buffer size must be positive, got {buf_size}")

    buffer = bytearray()
    async for fragment in source:
        buffer += fragment
        if len(buffer) >= buf_size:
            yield bytes(buffer)
            buffer = bytearray()

    # Yield the last chunk
    if buffer:
        yield bytes(buffer)


async def iter_file(
    fileobj: BinaryIO, read_size: int = DEFAULT_READ_SIZE
) -> AsyncIterator[bytes]:
    """
    Read a binary file object without blocking the event loop.

    Args:
        fileobj: File object opened in binary mode
        read_size: Number of bytes requested per read

    Yields:
        Fragments of the file, in order
    """
    while True:
        data = await asyncio.to_thread(fileobj.read, read_size)
        if not data:
            break
        yield data
