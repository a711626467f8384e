from typing import NamedTuple


class RangeDescriptor(NamedTuple):
    start: int
    end: int
    total: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def header(self) -> str:
        """Value for the ``Content-Range`` header."""
        return f"bytes {self.start}-{self.end}/{self.total}"


class LoginInfo(NamedTuple):
    token: str
    session_id: str | None
    code: int | None = None
    msg: str | None = None


class UploadSession(NamedTuple):
    name: str
    path: str
    size: int
    location: str


class DownloadSession(NamedTuple):
    url: str
    location: str


class SummaryStats(NamedTuple):
    total_bytes: int
    total_time: float
    total_chunks: int
    average_speed: float
