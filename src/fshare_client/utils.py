import logging
import math
import re
import sys
import time

from fshare_client.structs import SummaryStats


def configure_logging(debug: bool = False):
    """
    Send client logs to stderr so stdout stays free for file data.

    Args:
        debug: Whether to enable debug output
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    root = logging.getLogger("fshare_client")
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)


class TransferMonitor:
    """Track bytes and chunks for a single transfer."""

    def __init__(self, total_bytes: int = 0, chunk_size: int = 0):
        """
        Initialize the monitor.

        Args:
            total_bytes: Declared size of the transfer, 0 when unknown
            chunk_size: Size of each chunk, used to estimate the chunk count
        """
        self.start_time = None
        self.total_bytes = total_bytes
        self.transferred = 0
        self.completed_chunks = 0
        self.total_chunks = (
            math.ceil(total_bytes / chunk_size) if total_bytes and chunk_size else 0
        )

    def start(self):
        """Start monitoring."""
        self.start_time = time.time()

    def chunk_completed(self, size: int):
        """
        Record a chunk that the remote end accepted.

        Args:
            size: Number of bytes in the chunk
        """
        self.transferred += size
        self.completed_chunks += 1

    def elapsed(self) -> float:
        if self.start_time is None:
            return 0.0
        return time.time() - self.start_time

    def speed(self) -> float:
        elapsed = self.elapsed()
        return self.transferred / elapsed if elapsed > 0 else 0.0

    def progress(self) -> str:
        """Current progress, completed chunks and speed as a single line."""
        progress_str = f"Transferred: {format_size(self.transferred)}"
        if self.total_bytes:
            progress_str += f"/{format_size(self.total_bytes)}"
        if self.total_chunks:
            progress_str += f" | Chunks: {self.completed_chunks}/{self.total_chunks}"
        progress_str += f" | Speed: {format_speed(self.speed())}"
        return progress_str

    def summary(self) -> SummaryStats:
        return SummaryStats(
            total_bytes=self.transferred,
            total_time=self.elapsed(),
            total_chunks=self.completed_chunks,
            average_speed=self.speed(),
        )


def format_size(size: int) -> str:
    """
    Format size in bytes to human-readable format.

    Args:
        size: Size in bytes

    Returns:
        Formatted size string
    """
    units = ["B", "KB", "MB", "GB", "TB"]
    unit_index = 0

    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1

    return f"{size:.2f} {units[unit_index]}"


def format_speed(speed: float) -> str:
    """
    Format speed in bytes/second to human-readable format.

    Args:
        speed: Speed in bytes per second

    Returns:
        Formatted speed string
    """
    units = ["B/s", "KB/s", "MB/s", "GB/s"]
    unit_index = 0

    while speed >= 1024 and unit_index < len(units) - 1:
        speed /= 1024
        unit_index += 1

    return f"{speed:.2f} {units[unit_index]}"


def parse_size(size_str: str) -> int:
    """
    Parse a size string with optional suffix (KB, MB, GB) to bytes.

    Args:
        size_str: Size string (e.g., "16MB", "64KB", "1GB")

    Returns:
        Size in bytes
    """
    match = re.match(r"^(\d+)([KMG]B)?$", size_str.strip(), re.IGNORECASE)
    if not match:
        raise ValueError(
            f"Invalid size format: {size_str}. Expected format: NUMBER[KB|MB|GB]"
        )

    value, unit = match.groups()
    value = int(value)

    if unit:
        unit = unit.upper()
        if unit == "KB":
            value *= 1024
        elif unit == "MB":
            value *= 1024**2
        elif unit == "GB":
            value *= 1024**3

    return value
