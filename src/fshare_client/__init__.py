"""FShare download and chunked upload client."""

import asyncio
import sys

from fshare_client.cli import cli as run_cli
from fshare_client.client import Client
from fshare_client.download import save_response
from fshare_client.errors import (
    AuthFailure,
    ChunkTransferFailure,
    FShareError,
    RedirectRequested,
    SessionCreationFailure,
)
from fshare_client.structs import RangeDescriptor
from fshare_client.upload import RangeUploader

__all__ = [
    "AuthFailure",
    "ChunkTransferFailure",
    "Client",
    "FShareError",
    "RangeDescriptor",
    "RangeUploader",
    "RedirectRequested",
    "SessionCreationFailure",
    "main",
    "save_response",
]


def main():
    try:
        asyncio.run(run_cli())
    except KeyboardInterrupt:
        print("\nTransfer interrupted by user.", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)
