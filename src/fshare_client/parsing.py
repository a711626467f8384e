import argparse
import os
import posixpath
import re
from urllib.parse import urljoin

import httpx

from fshare_client.constants import (
    DEFAULT_CHUNK_SIZE,
    ENV_PASSWORD,
    ENV_USER_EMAIL,
    FILE_BASE_URL,
    MODE_DOWNLOAD,
    MODE_UPLOAD,
)
from fshare_client.utils import parse_size


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="fshare",
        description="Download files from and upload files to FShare.",
    )

    parser.add_argument(
        "mode",
        choices=[MODE_DOWNLOAD, MODE_UPLOAD],
        help="Operation mode: download or upload",
    )
    parser.add_argument(
        "target",
        help="File URL or id to download, or local file to upload",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default="/",
        help="Remote folder to upload into (default: /)",
    )

    # Authentication
    parser.add_argument(
        "-u",
        "--username",
        "--user",
        dest="username",
        default=os.environ.get(ENV_USER_EMAIL),
        help=f"Account email (default: ${ENV_USER_EMAIL})",
    )
    parser.add_argument(
        "-p",
        "--password",
        "--pass",
        dest="password",
        default=os.environ.get(ENV_PASSWORD),
        help=f"Account password (default: ${ENV_PASSWORD})",
    )
    parser.add_argument(
        "-H",
        "--header",
        action="append",
        default=[],
        help="Extra header sent with every request, e.g. 'User-Agent: foo'. Repeatable.",
    )

    # Transfer
    parser.add_argument(
        "-L",
        "--location",
        action="store_true",
        help="Follow the transfer location instead of printing it",
    )
    parser.add_argument("-o", "--output", help="Write the downloaded file to OUTPUT")
    parser.add_argument(
        "-O",
        "--remote-name",
        action="store_true",
        help="Name the downloaded file after the remote file",
    )
    parser.add_argument(
        "--chunk-size",
        type=str,
        default=str(DEFAULT_CHUNK_SIZE),
        help="Upload chunk size (e.g., '16MB'). Accepts suffixes KB, MB, GB. Default: 16MB",
    )

    parser.add_argument("--debug", action="store_true", help="Enable debug output")

    args = parser.parse_args(argv)

    try:
        args.headers = parse_headers(args.header)
        args.chunk_size_bytes = parse_size(args.chunk_size)
    except ValueError as e:
        parser.error(str(e))

    if args.chunk_size_bytes <= 0:
        parser.error("--chunk-size must be positive")
    if args.output and args.remote_name:
        parser.error("--output and --remote-name are mutually exclusive")

    return args


def parse_headers(values: list[str]) -> httpx.Headers:
    """
    Parse ``Name: value`` strings into headers.

    Raises:
        ValueError: If a value has no header name
    """
    headers = httpx.Headers()
    for value in values:
        name, sep, content = value.partition(":")
        name = name.strip()
        if not sep or not name:
            raise ValueError(f"Invalid header: {value!r}. Expected format: 'Name: value'")
        headers[name] = content.strip()
    return headers


def split_remote_path(remote_path: str) -> tuple[str, str]:
    """
    Split a remote file path into file name and folder.

    Args:
        remote_path: Path on FShare, e.g. /folder/file.txt

    Returns:
        Tuple of (name, path), e.g. ("file.txt", "/folder")

    Raises:
        ValueError: If the path does not name a file
    """
    normalized = posixpath.normpath("/" + remote_path.lstrip("/"))
    name = posixpath.basename(normalized)
    if not name or remote_path.endswith("/"):
        raise ValueError(f"Remote path must name a file: {remote_path}")

    return name, posixpath.dirname(normalized)


def resolve_file_url(url: str) -> tuple[str, str | None]:
    """
    Resolve a file URL or bare file id into a full FShare file URL.

    A ``password`` query parameter is taken out of the URL and returned apart.

    Returns:
        Tuple of (file_url, password)
    """
    if not re.match(r"^[a-z][a-z0-9+.-]*://", url, re.IGNORECASE):
        url = urljoin(FILE_BASE_URL, url)

    file_url = httpx.URL(url)
    password = file_url.params.get("password")
    if password is not None:
        file_url = file_url.copy_remove_param("password")
    return str(file_url), password
