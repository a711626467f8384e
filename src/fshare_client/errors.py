import httpx

from fshare_client.structs import RangeDescriptor


class FShareError(Exception):
    """Base class for errors raised by the FShare client."""


class AuthFailure(FShareError):
    """No credentials were supplied or the login returned no token."""

    def __init__(self, message: str, response: httpx.Response | None = None):
        super().__init__(message)
        self.response = response


class SessionCreationFailure(FShareError):
    """The upload or download session came back without a location."""

    def __init__(self, message: str, response: httpx.Response | None = None):
        super().__init__(message)
        self.response = response


class ChunkTransferFailure(FShareError):
    """A chunk request was answered with a non-success status."""

    def __init__(
        self,
        response: httpx.Response,
        descriptor: RangeDescriptor,
        bytes_sent: int,
    ):
        super().__init__(
            f"Chunk {descriptor.header} failed with status {response.status_code}"
        )
        self.response = response
        self.descriptor = descriptor
        self.bytes_sent = bytes_sent


class RedirectRequested(FShareError):
    """Raised in ``error`` redirect mode instead of following the location."""

    def __init__(self, location: str):
        super().__init__(f"Redirected to {location}")
        self.location = location
