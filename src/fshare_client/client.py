import base64
import binascii
import logging
import os
import re
from collections.abc import AsyncIterable
from typing import BinaryIO

import httpx

from fshare_client.chunker import iter_file
from fshare_client.constants import (
    API_URL,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_SECURED,
    ENV_APP_KEY,
    REDIRECT_ERROR,
    REDIRECT_FOLLOW,
    REDIRECT_MANUAL,
    REDIRECT_MODES,
    USER_AGENT,
)
from fshare_client.errors import AuthFailure, RedirectRequested, SessionCreationFailure
from fshare_client.parsing import resolve_file_url, split_remote_path
from fshare_client.structs import DownloadSession, LoginInfo, UploadSession
from fshare_client.upload import RangeUploader

logger = logging.getLogger(__name__)


async def _iter_bytes(data: bytes, size: int):
    for offset in range(0, len(data), size):
        yield data[offset : offset + size]


class Client:
    """
    Asynchronous FShare client.

    Logs in with the Basic credentials found in the ``Authorization`` header,
    then downloads files through download sessions and uploads them in
    ``Content-Range`` chunks through upload sessions.

    ```python
    async with await Client.connect("user", "pass") as client:
        response = await client.download("XXXXXXXXXX")
        with open("file.bin", "wb") as f:
            await save_response(response, f)

        with open("file.txt", "rb") as f:
            response = await client.upload("/folder/file.txt", f, size)
        print(response.json()["url"])
    ```
    """

    def __init__(
        self,
        headers=None,
        *,
        app_key: str | None = None,
        api_url: str = API_URL,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the client without logging in.

        Args:
            headers: Headers sent with every request, usually ``Authorization``
            app_key: Application key, defaults to the FSHARE_APP_KEY variable
            api_url: Base URL of the FShare API
            chunk_size: Size of each upload chunk in bytes
            http_client: httpx.AsyncClient to use instead of a private one
        """
        self.headers = httpx.Headers(headers)
        self.headers["Content-Type"] = "application/json; charset=utf-8"
        if "User-Agent" not in self.headers:
            self.headers["User-Agent"] = USER_AGENT

        self.app_key = app_key if app_key is not None else os.environ.get(ENV_APP_KEY, "")
        self.api_url = api_url.rstrip("/")
        self.chunk_size = chunk_size
        self.token = ""

        self._owns_http = http_client is None
        self.http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(None), follow_redirects=True
        )

    @classmethod
    async def connect(cls, username: str, password: str, **kwargs) -> "Client":
        """Create a client with Basic credentials and log in."""
        credentials = base64.b64encode(f"{username}:{password}".encode()).decode()
        client = cls(headers={"Authorization": f"Basic {credentials}"}, **kwargs)
        await client.login()
        return client

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback):
        await self.aclose()

    async def aclose(self):
        if self._owns_http:
            await self.http.aclose()

    def _credentials(self) -> tuple[str, str]:
        authorization = self.headers.get("Authorization")
        if not authorization:
            raise AuthFailure("No Authorization header supplied")

        match = re.match(r"^Basic\s+(.*)$", authorization)
        if not match:
            raise AuthFailure("Authorization header must use the Basic scheme")

        try:
            decoded = base64.b64decode(match.group(1)).decode()
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise AuthFailure(f"Malformed Basic credentials: {exc}") from exc

        user_email, _, password = decoded.partition(":")
        return user_email, password

    async def login(self) -> LoginInfo:
        """
        Exchange the Basic credentials for an API token.

        The token is cached on the client and the session cookie is added to
        the headers of later requests.

        Returns:
            LoginInfo with the token and session id

        Raises:
            AuthFailure: If no credentials were supplied or no token came back
        """
        user_email, password = self._credentials()

        response = await self.http.post(
            f"{self.api_url}/user/login",
            headers=self.headers,
            json={
                "app_key": self.app_key,
                "user_email": user_email,
                "password": password,
            },
        )
        data = _json_or_empty(response)

        token = data.get("token")
        if not token:
            raise AuthFailure(
                f"Login failed for {user_email}: {data.get('msg') or response.status_code}",
                response,
            )

        session_id = data.get("session_id")
        self.token = token
        self.headers["Cookie"] = f"session_id={session_id};"
        logger.info(f"Logged in as {user_email}")

        return LoginInfo(
            token=token, session_id=session_id, code=data.get("code"), msg=data.get("msg")
        )

    async def ensure_token(self) -> str:
        """Log in unless a token is already cached."""
        if not self.token:
            await self.login()
        return self.token

    def session_headers(self) -> httpx.Headers:
        """Copy of the client headers without ``Authorization``."""
        headers = httpx.Headers(self.headers)
        headers.pop("Authorization", None)
        return headers

    async def _open_session(self, endpoint: str, payload: dict) -> tuple[str, httpx.Response]:
        response = await self.http.post(
            f"{self.api_url}{endpoint}", headers=self.session_headers(), json=payload
        )
        location = _json_or_empty(response).get("location")
        if not location:
            raise SessionCreationFailure(
                f"No location returned by {endpoint} (status {response.status_code})",
                response,
            )

        logger.debug(f"{endpoint} issued {location}")
        return location, response

    async def create_upload_session(
        self, remote_path: str, size: int, secured: int = DEFAULT_SECURED
    ) -> tuple[UploadSession, httpx.Response]:
        """
        Ask for an upload location for a file of ``size`` bytes at ``remote_path``.

        Raises:
            SessionCreationFailure: If the response carries no location
        """
        token = await self.ensure_token()
        name, path = split_remote_path(remote_path)

        location, response = await self._open_session(
            "/session/upload",
            {
                "name": name,
                "size": str(size),
                "path": path,
                "token": token,
                "secured": secured,
            },
        )
        return UploadSession(name=name, path=path, size=size, location=location), response

    async def create_download_session(self, url: str) -> tuple[DownloadSession, httpx.Response]:
        """
        Ask for a direct link to the file at ``url``, a full URL or a file id.

        Raises:
            SessionCreationFailure: If the response carries no location
        """
        token = await self.ensure_token()
        file_url, password = resolve_file_url(url)

        location, response = await self._open_session(
            "/session/download",
            {"url": file_url, "token": token, "password": password},
        )
        return DownloadSession(url=file_url, location=location), response

    async def download(
        self, url: str, *, redirect: str = REDIRECT_FOLLOW
    ) -> httpx.Response:
        """
        Download a file from FShare.

        With ``redirect="manual"`` the response is an empty 303 whose
        ``Location`` header is the direct download link. Otherwise it is the
        streamed response of the file content, to be read with ``aiter_bytes``
        and closed by the caller.

        Raises:
            RedirectRequested: If ``redirect`` is ``"error"``
        """
        _check_redirect_mode(redirect)
        session, _ = await self.create_download_session(url)

        redirected = _redirect(session.location, redirect)
        if redirected is not None:
            return redirected

        request = self.http.build_request(
            "GET", session.location, headers=self.session_headers()
        )
        return await self.http.send(request, stream=True)

    async def upload(
        self,
        remote_path: str,
        source: AsyncIterable[bytes] | BinaryIO | bytes,
        size: int,
        *,
        redirect: str = REDIRECT_FOLLOW,
        secured: int = DEFAULT_SECURED,
    ) -> httpx.Response:
        """
        Upload a file to ``remote_path`` on FShare, e.g. /folder/file.txt.

        ``size`` must be the exact number of bytes ``source`` produces. With
        ``redirect="manual"`` the response is an empty 303 whose ``Location``
        header is the upload link and no data is sent. Otherwise the response
        of the last chunk is returned, carrying the JSON information of the new
        file. An empty file sends no chunk; the upload session response is
        returned instead.

        Raises:
            RedirectRequested: If ``redirect`` is ``"error"``
            ChunkTransferFailure: If a chunk is rejected
        """
        _check_redirect_mode(redirect)
        session, response = await self.create_upload_session(remote_path, size, secured)

        redirected = _redirect(session.location, redirect)
        if redirected is not None:
            return redirected

        uploader = RangeUploader(self.http, chunk_size=self.chunk_size)
        result = await uploader.upload(
            session.location,
            _as_source(source, self.chunk_size),
            size,
            self.session_headers(),
        )
        return result if result is not None else response


def _as_source(source, chunk_size: int) -> AsyncIterable[bytes]:
    # Reads of one chunk each keep every chunk but the last at exactly chunk_size
    if isinstance(source, (bytes, bytearray, memoryview)):
        return _iter_bytes(bytes(source), chunk_size)
    if hasattr(source, "read"):
        return iter_file(source, read_size=chunk_size)
    return source


def _json_or_empty(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _check_redirect_mode(redirect: str):
    if redirect not in REDIRECT_MODES:
        raise ValueError(
            f"Invalid redirect mode: {redirect}. Expected one of {', '.join(REDIRECT_MODES)}"
        )


def _redirect(location: str, redirect: str) -> httpx.Response | None:
    if redirect == REDIRECT_MANUAL:
        return httpx.Response(303, headers={"Location": location})
    if redirect == REDIRECT_ERROR:
        raise RedirectRequested(location)
    return None
