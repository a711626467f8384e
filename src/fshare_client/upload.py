import logging
from collections.abc import AsyncIterable, Mapping

import httpx

from fshare_client.chunker import iter_chunks
from fshare_client.constants import CHUNK_HEADERS, DEFAULT_CHUNK_SIZE
from fshare_client.errors import ChunkTransferFailure
from fshare_client.structs import RangeDescriptor
from fshare_client.utils import TransferMonitor, format_size, format_speed

logger = logging.getLogger(__name__)


class RangeUploader:
    """Send a byte stream to an upload location as ``Content-Range`` chunks."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """
        Initialize with the HTTP client used for chunk requests.

        Args:
            client: httpx.AsyncClient instance
            chunk_size: Minimum size of every chunk but the last
        """
        if chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, got {chunk_size}")
        self.client = client
        self.chunk_size = chunk_size

    def chunk_headers(
        self, headers: Mapping[str, str], descriptor: RangeDescriptor
    ) -> httpx.Headers:
        """
        Build the headers of a single chunk request.

        Neither ``Authorization`` nor the JSON ``Content-Type`` of the API
        requests reaches the upload location.
        """
        chunk_headers = httpx.Headers(headers)
        chunk_headers.pop("Authorization", None)
        chunk_headers.pop("Content-Type", None)
        chunk_headers.update(CHUNK_HEADERS)
        chunk_headers["Content-Length"] = str(descriptor.length)
        chunk_headers["Content-Range"] = descriptor.header
        return chunk_headers

    async def upload(
        self,
        location: str,
        source: AsyncIterable[bytes],
        total_size: int,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response | None:
        """
        Upload every chunk of ``source`` to ``location``, one at a time.

        Args:
            location: Upload URL issued by the upload session
            source: Async iterable producing the file content
            total_size: Size declared when the session was created
            headers: Session headers sent along with each chunk

        Returns:
            Response to the last chunk, or None when the source was empty

        Raises:
            ChunkTransferFailure: If a chunk is answered with a non-success status
        """
        headers = headers or {}
        monitor = TransferMonitor(total_bytes=total_size, chunk_size=self.chunk_size)
        logger.info(
            f"Uploading {monitor.total_chunks} chunks of approximately "
            f"{format_size(self.chunk_size)} each..."
        )
        monitor.start()

        bytes_sent = 0
        response = None
        async for chunk in iter_chunks(source, self.chunk_size):
            descriptor = RangeDescriptor(
                start=bytes_sent, end=bytes_sent + len(chunk) - 1, total=total_size
            )
            logger.debug(f"POST {location} {descriptor.header}")
            response = await self.client.post(
                location,
                headers=self.chunk_headers(headers, descriptor),
                content=chunk,
            )
            bytes_sent += len(chunk)

            if not response.is_success:
                logger.error(
                    f"Chunk {descriptor.header} rejected with status "
                    f"{response.status_code} after {bytes_sent} bytes"
                )
                raise ChunkTransferFailure(response, descriptor, bytes_sent)

            monitor.chunk_completed(len(chunk))
            logger.info(f"Uploaded chunk {descriptor.header} | {monitor.progress()}")

        if bytes_sent != total_size:
            logger.warning(
                f"Sent {bytes_sent} bytes but {total_size} were declared for {location}"
            )

        stats = monitor.summary()
        logger.info(
            f"Upload finished: {format_size(stats.total_bytes)} in {stats.total_chunks} "
            f"chunks, {stats.total_time:.2f}s ({format_speed(stats.average_speed)})"
        )

        return response
