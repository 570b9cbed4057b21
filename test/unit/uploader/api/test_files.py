"""Tests for stored file access and the web form bundle."""

from robyn import Response
from robyn.responses import FileResponse

from uploader.api.files import STATIC_DIR, WEBFORM_ASSETS, load_webform_assets, render_asset, serve_stored_file
from uploader.api.upload import handle_upload
from uploader.models.core import MultipartBody

BOUNDARY = "----uploadtestboundary"


# -----------------------------------------------------------------------------
# serve_stored_file Tests
# -----------------------------------------------------------------------------


class TestServeStoredFile:
    """Tests for GET /:name."""

    def test_existing_file(self, storage_dir) -> None:
        (storage_dir / "0a1b2c.txt").write_bytes(b"hello")

        result = serve_stored_file(storage_dir, "0a1b2c.txt")

        assert isinstance(result, FileResponse)
        assert result.file_path == str(storage_dir / "0a1b2c.txt")
        assert result.status_code == 200

    def test_missing_file(self, storage_dir) -> None:
        result = serve_stored_file(storage_dir, "deadbeef.png")

        assert isinstance(result, Response)
        assert result.status_code == 404
        assert result.description == "File not found"

    def test_names_cannot_escape_storage(self, storage_dir) -> None:
        (storage_dir.parent / "secret.txt").write_bytes(b"private")

        for name in ("../secret.txt", "..", ".hidden", "a\\b", ""):
            assert serve_stored_file(storage_dir, name).status_code == 404

    def test_directories_are_not_served(self, storage_dir) -> None:
        (storage_dir / "sub").mkdir()
        assert serve_stored_file(storage_dir, "sub").status_code == 404


async def test_uploaded_file_is_served_back(upload_config, multipart, storage_dir) -> None:
    """Verify a name returned by an upload resolves to the same bytes."""
    content = b"round trip " * 100
    body = multipart([("key", upload_config.secret.decode()), ("noredirect", "1"), ("file", "trip.txt", content)])

    response = await handle_upload(MultipartBody.from_bytes(BOUNDARY.encode(), body), upload_config)
    name = response.description.removeprefix(upload_config.public_root)

    served = serve_stored_file(storage_dir, name)
    assert isinstance(served, FileResponse)
    with open(served.file_path, "rb") as handle:
        assert handle.read() == content


# -----------------------------------------------------------------------------
# Web form Tests
# -----------------------------------------------------------------------------


class TestWebform:
    """Tests for the optional upload form bundle."""

    def test_bundle_is_complete(self) -> None:
        assets = load_webform_assets()

        assert set(assets) == set(WEBFORM_ASSETS) == {"/", "/style.css", "/scripts.js"}
        assert assets["/"][1].startswith("text/html")
        assert assets["/style.css"][1].startswith("text/css")
        assert assets["/scripts.js"][1].startswith("text/javascript")

    def test_form_fields_are_ordered_key_first(self) -> None:
        html = (STATIC_DIR / "index.html").read_text(encoding="utf-8")

        key_at = html.index('name="key"')
        assert key_at < html.index('name="noredirect"') < html.index('name="file"')

    def test_render_asset(self) -> None:
        response = render_asset("body { margin: 0; }", "text/css; charset=utf-8")

        assert response.status_code == 200
        assert response.description == "body { margin: 0; }"
        assert response.headers.get("content-type") == "text/css; charset=utf-8"
