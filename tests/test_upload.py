import logging
import random

import httpx
import pytest

from fshare_client.errors import ChunkTransferFailure
from fshare_client.structs import RangeDescriptor
from fshare_client.upload import RangeUploader

SESSION_HEADERS = {
    "Authorization": "Basic dXNlcjpwYXNz",
    "Cookie": "session_id=sid-456;",
    "User-Agent": "fshare-python",
    "Content-Type": "application/json; charset=utf-8",
}


def byte_fragments(data, size=1):
    return [data[i : i + size] for i in range(0, len(data), size)]


@pytest.mark.asyncio
async def test_forty_bytes_in_sixteen_byte_chunks(fake_server, make_source):
    data = bytes(range(40))

    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_server)) as http:
        uploader = RangeUploader(http, chunk_size=16)
        response = await uploader.upload(
            fake_server.location, make_source(*byte_fragments(data)), 40, SESSION_HEADERS
        )

    assert response.status_code == 200
    assert response.json() == {"url": "https://www.fshare.vn/file/NEWFILE"}
    assert fake_server.ranges == ["bytes 0-15/40", "bytes 16-31/40", "bytes 32-39/40"]
    assert [r.content for r in fake_server.chunk_requests] == [
        data[0:16],
        data[16:32],
        data[32:40],
    ]
    assert [r.headers["Content-Length"] for r in fake_server.chunk_requests] == [
        "16",
        "16",
        "8",
    ]


@pytest.mark.asyncio
async def test_single_chunk_upload(fake_server, make_source):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_server)) as http:
        uploader = RangeUploader(http, chunk_size=16)
        await uploader.upload(fake_server.location, make_source(b"a" * 16), 16)

    assert fake_server.ranges == ["bytes 0-15/16"]


@pytest.mark.asyncio
async def test_chunk_requests_carry_session_headers_without_authorization(
    fake_server, make_source
):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_server)) as http:
        uploader = RangeUploader(http, chunk_size=16)
        await uploader.upload(
            fake_server.location, make_source(b"a" * 20), 20, SESSION_HEADERS
        )

    (request,) = fake_server.chunk_requests
    assert request.method == "POST"
    assert "Authorization" not in request.headers
    assert "Content-Type" not in request.headers
    assert request.headers["Cookie"] == "session_id=sid-456;"
    assert request.headers["User-Agent"] == "fshare-python"
    assert request.headers["Accept"] == "*/*"
    assert request.headers["Accept-Language"] == "en-US,en;q=0.5"
    assert request.headers["Accept-Encoding"] == "gzip, deflate, br"
    assert request.headers["Connection"] == "keep-alive"
    assert request.headers["Content-Range"] == "bytes 0-19/20"


@pytest.mark.asyncio
async def test_failed_chunk_stops_the_upload(server_factory, make_source):
    server = server_factory(fail_chunk=1, fail_status=502)
    data = b"x" * 64

    async with httpx.AsyncClient(transport=httpx.MockTransport(server)) as http:
        uploader = RangeUploader(http, chunk_size=16)
        with pytest.raises(ChunkTransferFailure) as exc_info:
            await uploader.upload(server.location, make_source(*byte_fragments(data, 8)), 64)

    assert len(server.chunk_requests) == 2
    assert server.ranges == ["bytes 0-15/64", "bytes 16-31/64"]
    failure = exc_info.value
    assert failure.response.status_code == 502
    assert failure.descriptor == RangeDescriptor(start=16, end=31, total=64)
    assert failure.bytes_sent == 32


@pytest.mark.asyncio
async def test_failure_on_first_chunk(server_factory, make_source):
    server = server_factory(fail_chunk=0, fail_status=401)

    async with httpx.AsyncClient(transport=httpx.MockTransport(server)) as http:
        uploader = RangeUploader(http, chunk_size=16)
        with pytest.raises(ChunkTransferFailure) as exc_info:
            await uploader.upload(server.location, make_source(b"y" * 40), 40)

    assert len(server.chunk_requests) == 1
    assert exc_info.value.descriptor.header == "bytes 0-39/40"


@pytest.mark.asyncio
async def test_empty_source_sends_nothing(fake_server, make_source):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_server)) as http:
        uploader = RangeUploader(http, chunk_size=16)
        response = await uploader.upload(fake_server.location, make_source(), 0)

    assert response is None
    assert fake_server.requests == []


@pytest.mark.asyncio
async def test_short_source_leaves_the_size_mismatch_visible(
    fake_server, make_source, caplog
):
    caplog.set_level(logging.WARNING, logger="fshare_client.upload")

    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_server)) as http:
        uploader = RangeUploader(http, chunk_size=16)
        await uploader.upload(
            fake_server.location, make_source(*byte_fragments(b"z" * 90)), 100
        )

    last = fake_server.ranges[-1]
    assert last == "bytes 80-89/100"
    end, total = last.removeprefix("bytes 80-").split("/")
    assert int(end) + 1 == 90 != int(total)
    assert "Sent 90 bytes but 100 were declared" in caplog.text


@pytest.mark.asyncio
@pytest.mark.parametrize("seed", range(4))
async def test_ranges_partition_the_upload(fake_server, make_source, seed):
    rng = random.Random(seed)
    total = rng.randint(1, 3000)
    chunk_size = rng.randint(1, 400)
    fragments = byte_fragments(b"r" * total, rng.randint(1, 97))

    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_server)) as http:
        uploader = RangeUploader(http, chunk_size=chunk_size)
        await uploader.upload(fake_server.location, make_source(*fragments), total)

    expected_start = 0
    for header in fake_server.ranges:
        span, declared = header.removeprefix("bytes ").split("/")
        start, end = (int(v) for v in span.split("-"))
        assert start == expected_start
        assert end >= start
        assert int(declared) == total
        expected_start = end + 1
    assert expected_start == total


@pytest.mark.asyncio
async def test_transport_errors_propagate(make_source):
    sent = []

    def handler(request):
        sent.append(request)
        raise httpx.ConnectError("connection reset", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        uploader = RangeUploader(http, chunk_size=16)
        with pytest.raises(httpx.ConnectError):
            await uploader.upload(
                "https://up.fshare.vn/upload/x", make_source(b"a" * 40), 40
            )

    assert len(sent) == 1


def test_chunk_size_must_be_positive():
    with pytest.raises(ValueError):
        RangeUploader(None, chunk_size=0)


def test_range_descriptor_header():
    descriptor = RangeDescriptor(start=16, end=31, total=40)

    assert descriptor.header == "bytes 16-31/40"
    assert descriptor.length == 16


@pytest.mark.asyncio
async def test_next_chunk_is_read_only_after_the_previous_request(fake_server):
    events = []

    async def source():
        for i in range(4):
            events.append(f"read{i}")
            yield b"s" * 16

    def handler(request):
        events.append(f"post {request.headers['Content-Range']}")
        return fake_server(request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        uploader = RangeUploader(http, chunk_size=16)
        await uploader.upload(fake_server.location, source(), 64)

    assert events == [
        "read0",
        "post bytes 0-15/64",
        "read1",
        "post bytes 16-31/64",
        "read2",
        "post bytes 32-47/64",
        "read3",
        "post bytes 48-63/64",
    ]


@pytest.mark.asyncio
async def test_upload_logs_a_final_summary(fake_server, make_source, caplog):
    caplog.set_level(logging.INFO, logger="fshare_client.upload")

    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_server)) as http:
        uploader = RangeUploader(http, chunk_size=16)
        await uploader.upload(fake_server.location, make_source(b"k" * 40), 40)

    assert "Upload finished: 40.00 B in 1 chunks" in caplog.text
