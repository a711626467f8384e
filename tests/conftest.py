import base64
import json

import httpx
import pytest

API_URL = "https://api.fshare.vn/api"
UPLOAD_LOCATION = "https://up.fshare.vn/upload/session-1"
DOWNLOAD_LOCATION = "https://download.fshare.vn/dl/abc/movie.mkv"
NEW_FILE_URL = "https://www.fshare.vn/file/NEWFILE"


class FakeFShare:
    """In-memory stand-in for the FShare API, the upload and download hosts."""

    def __init__(
        self,
        *,
        token="tok-123",
        session_id="sid-456",
        location=UPLOAD_LOCATION,
        download_location=DOWNLOAD_LOCATION,
        fail_chunk=None,
        fail_status=500,
        file_content=b"downloaded content",
    ):
        self.token = token
        self.session_id = session_id
        self.location = location
        self.download_location = download_location
        self.fail_chunk = fail_chunk
        self.fail_status = fail_status
        self.file_content = file_content
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)

        if url == f"{API_URL}/user/login":
            if not self.token:
                return httpx.Response(
                    200, json={"code": 406, "msg": "Invalid credentials"}
                )
            return httpx.Response(
                200,
                json={
                    "code": 200,
                    "msg": "Login successfully!",
                    "token": self.token,
                    "session_id": self.session_id,
                },
            )

        if url == f"{API_URL}/session/upload":
            return httpx.Response(200, json={"location": self.location})

        if url == f"{API_URL}/session/download":
            return httpx.Response(200, json={"location": self.download_location})

        if url == self.location:
            index = len(self.chunk_requests) - 1
            if index == self.fail_chunk:
                return httpx.Response(self.fail_status, json={"msg": "rejected"})
            return httpx.Response(200, json={"url": NEW_FILE_URL})

        if url == self.download_location:
            return httpx.Response(200, content=self.file_content)

        return httpx.Response(404)

    def requests_to(self, url):
        return [r for r in self.requests if str(r.url) == url]

    @property
    def chunk_requests(self):
        return self.requests_to(self.location)

    @property
    def ranges(self):
        return [r.headers["Content-Range"] for r in self.chunk_requests]

    def payload(self, url):
        (request,) = self.requests_to(url)
        return json.loads(request.content)


@pytest.fixture
def fake_server():
    return FakeFShare()


@pytest.fixture
def basic_headers():
    credentials = base64.b64encode(b"user@example.com:secret").decode()
    return {"Authorization": f"Basic {credentials}"}


@pytest.fixture
def make_source():
    """Build an async byte source from a list of fragments."""

    def _make_source(*fragments):
        async def _source():
            for fragment in fragments:
                yield fragment

        return _source()

    return _make_source


@pytest.fixture
def server_factory():
    return FakeFShare
