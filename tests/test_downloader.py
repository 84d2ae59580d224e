"""Tests for the HTTP downloader."""

import pytest
from aiohttp import test_utils
from aiohttp import web
from compat_setup import HttpDownloader
from compat_setup import NullProgress
from compat_setup import TransportError
from compat_setup.downloader import filename_from_url

from fakes import RecordingProgress

PAYLOAD = bytes(range(256)) * 800


def _app() -> web.Application:
    async def release(request: web.Request) -> web.Response:
        return web.Response(body=PAYLOAD)

    app = web.Application()
    app.router.add_get("/releases/GE-Proton9-20.tar.gz", release)
    return app


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://example.org/releases/dxvk-2.4.tar.gz", "dxvk-2.4.tar.gz"),
        ("https://example.org/a/b/app%20build.tar.xz?token=1", "app build.tar.xz"),
        ("https://example.org/", "download"),
    ],
)
def test_filename_from_url(url, expected):
    """Test archive names come from the last URL path segment."""
    assert filename_from_url(url) == expected


@pytest.mark.asyncio
async def test_download_streams_to_disk(tmp_path):
    """Test the response body is written and progress is reported in bytes."""
    progress = RecordingProgress()

    async with test_utils.TestServer(_app()) as server:
        url = str(server.make_url("/releases/GE-Proton9-20.tar.gz"))
        path = await HttpDownloader(chunk_size=16 * 1024).download(url, tmp_path, progress)

    assert path == tmp_path / "GE-Proton9-20.tar.gz"
    assert path.read_bytes() == PAYLOAD
    assert progress.events[0] == ("setup", len(PAYLOAD), "GE-Proton9-20.tar.gz")
    assert progress.events[-1] == ("progress", len(PAYLOAD))
    progress.assert_well_formed()


@pytest.mark.asyncio
async def test_http_error_raises_transport_error(tmp_path):
    """Test non-200 responses raise TransportError."""
    async with test_utils.TestServer(_app()) as server:
        url = str(server.make_url("/releases/missing.tar.gz"))

        with pytest.raises(TransportError, match="HTTP 404") as exc_info:
            await HttpDownloader().download(url, tmp_path, NullProgress())

    assert exc_info.value.context["status"] == 404


@pytest.mark.asyncio
async def test_unreachable_source_raises_transport_error(tmp_path):
    """Test connection failures raise TransportError."""
    with pytest.raises(TransportError, match="Failed to download"):
        await HttpDownloader(connect_timeout=5).download("http://127.0.0.1:1/runtime.tar.gz", tmp_path, NullProgress())


@pytest.mark.asyncio
async def test_unwritable_destination_raises_transport_error(tmp_path):
    """Test a missing output directory raises TransportError."""
    async with test_utils.TestServer(_app()) as server:
        url = str(server.make_url("/releases/GE-Proton9-20.tar.gz"))

        with pytest.raises(TransportError, match="Cannot write"):
            await HttpDownloader().download(url, tmp_path / "missing", NullProgress())
