import base64
import os
import posixpath
import sys

from fshare_client.client import Client
from fshare_client.constants import (
    MODE_DOWNLOAD,
    MODE_UPLOAD,
    REDIRECT_FOLLOW,
    REDIRECT_MANUAL,
)
from fshare_client.download import remote_name, save_response
from fshare_client.errors import AuthFailure, FShareError
from fshare_client.parsing import parse_arguments
from fshare_client.utils import configure_logging, format_size


async def cli(argv=None):
    """Main entry point for the FShare command line client."""
    # Parse command line arguments
    args = parse_arguments(argv)
    configure_logging(args.debug)

    headers = args.headers
    if args.username and args.password:
        credentials = base64.b64encode(
            f"{args.username}:{args.password}".encode()
        ).decode()
        headers["Authorization"] = f"Basic {credentials}"

    redirect = REDIRECT_FOLLOW if args.location else REDIRECT_MANUAL

    async with Client(headers=headers, chunk_size=args.chunk_size_bytes) as client:
        try:
            await client.login()
        except AuthFailure as e:
            print(f"Login failed: {e}", file=sys.stderr)
            sys.exit(1)

        try:
            if args.mode == MODE_DOWNLOAD:
                await download(args, client, redirect)
            elif args.mode == MODE_UPLOAD:
                await upload(args, client, redirect)
        except FShareError as e:
            print(f"\n{args.mode.capitalize()} failed: {e}", file=sys.stderr)
            sys.exit(1)


async def download(args, client, redirect):
    """Download a file and write it to the output file or stdout."""
    response = await client.download(args.target, redirect=redirect)

    if redirect == REDIRECT_MANUAL:
        print(response.headers["Location"])
        return

    if not response.is_success:
        await response.aclose()
        print(f"Download failed with status {response.status_code}", file=sys.stderr)
        sys.exit(1)

    output = args.output
    if args.remote_name:
        output = remote_name(response.url)

    if output:
        with open(output, "wb") as f:
            written = await save_response(response, f)
        print(f"Saved {format_size(written)} to {output}", file=sys.stderr)
    else:
        await save_response(response, sys.stdout.buffer)


async def upload(args, client, redirect):
    """Upload a local file into the remote folder."""
    input_path = args.target
    if not os.path.isfile(input_path):
        print(f"Missing input file: {input_path}", file=sys.stderr)
        sys.exit(1)

    remote_path = posixpath.join(args.path or "/", os.path.basename(input_path))
    size = os.path.getsize(input_path)
    print(f"Uploading {format_size(size)} to {remote_path}", file=sys.stderr)

    with open(input_path, "rb") as f:
        response = await client.upload(remote_path, f, size, redirect=redirect)

    if redirect == REDIRECT_MANUAL:
        print(response.headers["Location"])
        return

    if not response.is_success:
        print(f"Upload failed with status {response.status_code}", file=sys.stderr)
        sys.exit(1)

    try:
        print(response.json().get("url", response.text))
    except ValueError:
        print(response.text)
