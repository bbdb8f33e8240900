"""Tests for the served HTTP surface."""

from __future__ import annotations

from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from pi.share.bandwidth import BandwidthMeter
from pi.share.server.app import ServeSettings, create_share_app
from pi.share.server import upload
from pi.share.server.upload import safe_filename, save_upload


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.fixture
def site(tmp_path: Path) -> Path:
    root = tmp_path / "site"
    root.mkdir()
    (root / "index.html").write_text("<h1>home</h1>")
    (root / "notes.txt").write_text("some notes")
    (root / "sub").mkdir()
    (root / "sub" / "index.html").write_text("<h1>sub</h1>")
    return root


@pytest.fixture
def logs() -> list[str]:
    return []


@pytest.fixture
def uploads() -> list[Path]:
    return []


@pytest.fixture
def meter() -> BandwidthMeter:
    return BandwidthMeter()


@pytest.fixture
async def client(site: Path, logs: list[str], meter: BandwidthMeter, uploads: list[Path]):
    app = create_share_app(
        ServeSettings(root_dir=str(site)), meter=meter, log=logs.append, on_upload=uploads.append
    )
    async with _client(app) as c:
        yield c


class TestStaticServing:
    async def test_root_serves_index(self, client: AsyncClient):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.text == "<h1>home</h1>"

    async def test_serves_file(self, client: AsyncClient):
        response = await client.get("/notes.txt")
        assert response.status_code == 200
        assert response.text == "some notes"
        assert response.headers["content-type"].startswith("text/plain")

    async def test_subdirectory_default_document(self, client: AsyncClient):
        response = await client.get("/sub/")
        assert response.status_code == 200
        assert response.text == "<h1>sub</h1>"

    async def test_plain_not_found(self, client: AsyncClient, logs: list[str]):
        response = await client.get("/missing.txt")
        assert response.status_code == 404
        assert response.text == "Not Found"
        assert any("Not found: /missing.txt" in line for line in logs)

    async def test_custom_not_found(self, site: Path):
        app = create_share_app(
            ServeSettings(root_dir=str(site), not_found_html="<p>gone</p>"), log=lambda _m: None
        )
        async with _client(app) as c:
            response = await c.get("/missing.txt")
        assert response.status_code == 404
        assert response.text == "<p>gone</p>"
        assert response.headers["content-type"].startswith("text/html")

    async def test_folder_404_page_not_used(self, site: Path):
        (site / "404.html").write_text("folder page")
        app = create_share_app(
            ServeSettings(root_dir=str(site), not_found_html="<p>gone</p>"), log=lambda _m: None
        )
        async with _client(app) as c:
            response = await c.get("/missing.txt")
        assert response.status_code == 404
        assert response.text == "<p>gone</p>"

    async def test_folder_404_page_without_fallback(self, client: AsyncClient, site: Path):
        (site / "404.html").write_text("folder page")
        response = await client.get("/missing.txt")
        assert response.status_code == 404
        assert response.text == "Not Found"


class TestUpload:
    async def test_upload_form(self, client: AsyncClient):
        response = await client.get("/upload.html")
        assert response.status_code == 200
        assert 'name="fileToUpload"' in response.text
        assert 'action="/upload"' in response.text

    async def test_upload_saves_file(self, client: AsyncClient, site: Path, uploads: list[Path]):
        response = await client.post(
            "/upload", files={"fileToUpload": ("report.csv", b"a,b\n1,2\n", "text/csv")}
        )
        assert response.status_code == 200
        assert response.text == "File uploaded successfully! File saved to: report.csv"
        assert (site / "report.csv").read_bytes() == b"a,b\n1,2\n"
        assert uploads == [site / "report.csv"]

    async def test_upload_strips_directories(self, client: AsyncClient, site: Path, tmp_path: Path):
        response = await client.post(
            "/upload", files={"fileToUpload": ("../../evil.txt", b"x", "text/plain")}
        )
        assert response.status_code == 200
        assert (site / "evil.txt").exists()
        assert not (tmp_path / "evil.txt").exists()

    async def test_upload_wrong_field(self, client: AsyncClient):
        response = await client.post("/upload", files={"other": ("a.txt", b"x", "text/plain")})
        assert response.status_code == 400
        assert "fileToUpload" in response.text

    async def test_upload_get_falls_through_to_not_found(self, client: AsyncClient):
        response = await client.get("/upload")
        assert response.status_code == 404

    @pytest.mark.parametrize(
        ("method", "path"),
        [("PUT", "/upload"), ("DELETE", "/upload"), ("POST", "/notes.txt"), ("POST", "/x.txt")],
    )
    async def test_other_methods_get_custom_not_found(self, site: Path, method: str, path: str):
        app = create_share_app(
            ServeSettings(root_dir=str(site), not_found_html="<p>gone</p>"), log=lambda _m: None
        )
        async with _client(app) as c:
            response = await c.request(method, path)
        assert response.status_code == 404
        assert response.text == "<p>gone</p>"
        assert response.headers["content-type"].startswith("text/html")

    async def test_write_error_returns_500(self, client: AsyncClient, site: Path):
        (site / "taken").mkdir()
        response = await client.post(
            "/upload", files={"fileToUpload": ("taken", b"x", "text/plain")}
        )
        assert response.status_code == 500
        assert response.text.startswith("Failed to upload file:")
        assert (site / "taken").is_dir()


class TestNoFolder:
    @pytest.fixture
    async def bare(self):
        async with _client(create_share_app(ServeSettings(), log=lambda _m: None)) as c:
            yield c

    async def test_placeholder_index(self, bare: AsyncClient):
        response = await bare.get("/")
        assert response.status_code == 200
        assert "No custom folder selected." in response.text

    async def test_api_placeholder(self, bare: AsyncClient):
        response = await bare.get("/api")
        assert response.json() == {"message": "This is an API response."}

    @pytest.mark.parametrize("path", ["/upload", "/upload.html"])
    async def test_upload_form_paths(self, bare: AsyncClient, path: str):
        response = await bare.get(path)
        assert response.status_code == 200
        assert "fileToUpload" in response.text

    async def test_upload_rejected(self, bare: AsyncClient):
        response = await bare.post("/upload", files={"fileToUpload": ("a.txt", b"x", "text/plain")})
        assert response.status_code == 400
        assert "No directory selected" in response.text

    async def test_not_found(self, bare: AsyncClient):
        response = await bare.get("/anything")
        assert response.status_code == 404
        assert response.text == "Not Found"


class TestMiddleware:
    async def test_request_log_line(self, client: AsyncClient, logs: list[str]):
        await client.get("/notes.txt?x=1")
        assert any("GET [200] /notes.txt?x=1" in line for line in logs)

    async def test_counts_response_bytes(self, client: AsyncClient, meter: BandwidthMeter):
        await client.get("/notes.txt")
        assert meter.pending >= len("some notes")
        assert meter.active

    async def test_counts_upload_bytes(self, client: AsyncClient, meter: BandwidthMeter):
        payload = b"z" * 5000
        await client.post("/upload", files={"fileToUpload": ("z.bin", payload, "application/octet-stream")})
        assert meter.pending >= len(payload)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("photo.jpg", "photo.jpg"),
        ("a/b/c.txt", "c.txt"),
        ("C:\\Users\\me\\doc.pdf", "doc.pdf"),
        ("..", ""),
        ("", ""),
        (None, ""),
    ],
)
def test_safe_filename(raw, expected):
    assert safe_filename(raw) == expected


class _ChunkedUpload:
    """Stands in for an UploadFile; fails after `fail_after` reads when set."""

    def __init__(self, data: bytes, fail_after: int | None = None) -> None:
        self._data = data
        self._fail_after = fail_after
        self.reads = 0

    async def read(self, size: int = -1) -> bytes:
        if self._fail_after is not None and self.reads >= self._fail_after:
            raise OSError("connection reset")
        self.reads += 1
        chunk, self._data = self._data[:size], self._data[size:]
        return chunk


class TestSaveUpload:
    async def test_writes_all_chunks(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(upload, "CHUNK_SIZE", 4)
        source = _ChunkedUpload(b"0123456789")
        await save_upload(source, tmp_path / "out.bin")
        assert (tmp_path / "out.bin").read_bytes() == b"0123456789"
        assert source.reads == 4

    async def test_failed_read_removes_partial_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ):
        monkeypatch.setattr(upload, "CHUNK_SIZE", 4)
        with pytest.raises(OSError, match="connection reset"):
            await save_upload(_ChunkedUpload(b"0123456789", fail_after=1), tmp_path / "out.bin")
        assert not (tmp_path / "out.bin").exists()
