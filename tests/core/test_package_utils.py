import io
import logging
import zipfile

import pytest
from PIL import Image

from epub2cbz.core.archive import EpubArchive
from epub2cbz.core.exceptions import OutputWriteError
from epub2cbz.core.models import ComicInfo, ComicPageInfo, ConversionSettings
from epub2cbz.core.package_utils import (
    COMIC_INFO_NAME,
    XML_DECLARATION,
    normalize_image_name,
    serialize_comic_info,
    write_cbz_package,
)

from tests.conftest import FAKE_JPEG, FAKE_PNG, corrupt_entry_size


def _png_bytes(width: int, height: int) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), (255, 255, 255)).save(buf, format="PNG")
    return buf.getvalue()


class TestNormalizeImageName:

    def test_single_digit_total(self):
        names = [normalize_image_name(f"i{i}.jpg", i, 5) for i in range(5)]
        assert names == ["page0.jpg", "page1.jpg", "page2.jpg", "page3.jpg", "page4.jpg"]

    def test_ten_images_use_two_digits(self):
        assert normalize_image_name("a.png", 0, 10) == "page00.png"
        assert normalize_image_name("a.png", 9, 10) == "page09.png"

    def test_extension_kept_verbatim(self):
        assert normalize_image_name("OEBPS/Images/Cover.JPEG", 3, 12) == "page03.JPEG"

    def test_no_extension(self):
        assert normalize_image_name("OEBPS/Images/raw", 1, 3) == "page1"

    def test_custom_prefix(self):
        assert normalize_image_name("x.webp", 2, 100, prefix="img") == "img002.webp"


class TestSerializeComicInfo:

    def test_declaration_and_indent(self):
        text = serialize_comic_info(ComicInfo(title="T", year=2020))
        assert text.startswith(XML_DECLARATION)
        lines = text.splitlines()
        assert lines[1] == "<ComicInfo>"
        assert lines[2] == "  <Title>T</Title>"
        assert lines[3] == "  <Year>2020</Year>"
        assert lines[4] == "</ComicInfo>"

    def test_zero_values_omitted(self):
        text = serialize_comic_info(ComicInfo(title="T"))
        assert "<Series" not in text
        assert "<Year" not in text
        assert "<Pages" not in text

    def test_schema_order(self):
        text = serialize_comic_info(ComicInfo(manga="No", title="T", writer="W", notes="N"))
        assert text.index("<Title>") < text.index("<Notes>") < text.index("<Writer>") < text.index("<Manga>")

    def test_pages(self):
        info = ComicInfo(title="T", page_count=2, pages=[
            ComicPageInfo(image=0, image_size=10, image_width=4, image_height=6),
            ComicPageInfo(image=2),
        ])
        text = serialize_comic_info(info)
        assert '<Page Image="0" ImageSize="10" ImageWidth="4" ImageHeight="6"/>' in text
        assert '<Page Image="2"/>' in text
        assert text.index("<PageCount>") < text.index("<Pages>")

    def test_special_characters_escaped(self):
        text = serialize_comic_info(ComicInfo(title="Tom & Jerry <1>"))
        assert "<Title>Tom &amp; Jerry &lt;1&gt;</Title>" in text

    def test_control_character_raises(self):
        with pytest.raises(ValueError):
            serialize_comic_info(ComicInfo(title="bad\x01title"))


class TestWriteCbzPackage:

    def _archive(self, make_epub, images):
        entries = {f"OEBPS/Images/{name}": data for name, data in images.items()}
        return EpubArchive(make_epub(entries))

    def test_writes_pages_in_order_verbatim(self, make_epub, tmp_path):
        images = {"b.jpg": FAKE_JPEG + b"b", "a.png": FAKE_PNG + b"a", "c.JPG": FAKE_JPEG + b"c"}
        out = tmp_path / "out.cbz"
        with self._archive(make_epub, images) as archive:
            report = write_cbz_package(
                archive,
                ["OEBPS/Images/b.jpg", "OEBPS/Images/a.png", "OEBPS/Images/c.JPG"],
                out,
            )
        assert report.pages_written == 3
        assert report.images_skipped == 0
        assert not report.comic_info_written
        with zipfile.ZipFile(out) as zf:
            assert zf.namelist() == ["page0.jpg", "page1.png", "page2.JPG"]
            assert zf.read("page0.jpg") == FAKE_JPEG + b"b"
            assert zf.read("page1.png") == FAKE_PNG + b"a"
            assert zf.getinfo("page0.jpg").date_time == (1980, 1, 1, 0, 0, 0)

    def test_missing_image_leaves_gap(self, make_epub, tmp_path, caplog):
        caplog.set_level(logging.WARNING, logger="epub2cbz")
        out = tmp_path / "out.cbz"
        with self._archive(make_epub, {"a.jpg": FAKE_JPEG, "c.jpg": FAKE_JPEG}) as archive:
            report = write_cbz_package(
                archive,
                ["OEBPS/Images/a.jpg", "OEBPS/Images/b.jpg", "OEBPS/Images/c.jpg"],
                out,
            )
        assert report.pages_written == 2
        assert report.images_skipped == 1
        assert "OEBPS/Images/b.jpg" in caplog.text
        with zipfile.ZipFile(out) as zf:
            assert zf.namelist() == ["page0.jpg", "page2.jpg"]

    def test_corrupt_image_skipped(self, make_epub, tmp_path, caplog):
        caplog.set_level(logging.WARNING, logger="epub2cbz")
        images = {name: FAKE_JPEG + name.encode() for name in ("a.jpg", "b.jpg", "c.jpg")}
        epub = make_epub({f"OEBPS/Images/{name}": data for name, data in images.items()})
        corrupt_entry_size(epub, "OEBPS/Images/b.jpg")
        out = tmp_path / "out.cbz"
        with EpubArchive(epub) as archive:
            report = write_cbz_package(
                archive,
                ["OEBPS/Images/a.jpg", "OEBPS/Images/b.jpg", "OEBPS/Images/c.jpg"],
                out,
                comic_info=ComicInfo(title="T"),
            )
        assert report.pages_written == 2
        assert report.images_skipped == 1
        assert "Error reading image OEBPS/Images/b.jpg" in caplog.text
        with zipfile.ZipFile(out) as zf:
            assert zf.namelist() == ["page0.jpg", "page2.jpg", COMIC_INFO_NAME]
            assert "<PageCount>2</PageCount>" in zf.read(COMIC_INFO_NAME).decode("utf-8")

    def test_write_failure_marks_partial_output(self, make_epub, tmp_path, monkeypatch):
        def failing_writestr(self, *args, **kwargs):
            raise OSError("disk full")

        out = tmp_path / "out.cbz"
        with self._archive(make_epub, {"a.jpg": FAKE_JPEG}) as archive:
            monkeypatch.setattr(zipfile.ZipFile, "writestr", failing_writestr)
            with pytest.raises(OutputWriteError) as exc_info:
                write_cbz_package(archive, ["OEBPS/Images/a.jpg"], out)
        assert exc_info.value.partial_output
        assert out.exists()

    def test_duplicate_references_written_twice(self, make_epub, tmp_path):
        out = tmp_path / "out.cbz"
        with self._archive(make_epub, {"a.jpg": FAKE_JPEG}) as archive:
            write_cbz_package(archive, ["OEBPS/Images/a.jpg"] * 2, out)
        with zipfile.ZipFile(out) as zf:
            assert zf.namelist() == ["page0.jpg", "page1.jpg"]

    def test_comic_info_written_last(self, make_epub, tmp_path):
        out = tmp_path / "out.cbz"
        images = {"a.png": _png_bytes(8, 12), "b.jpg": FAKE_JPEG}
        with self._archive(make_epub, images) as archive:
            report = write_cbz_package(
                archive,
                ["OEBPS/Images/a.png", "OEBPS/Images/b.jpg"],
                out,
                comic_info=ComicInfo(title="Vol 1"),
            )
        assert report.comic_info_written
        with zipfile.ZipFile(out) as zf:
            assert zf.namelist()[-1] == COMIC_INFO_NAME
            text = zf.read(COMIC_INFO_NAME).decode("utf-8")
        assert text.startswith('<?xml version="1.0" encoding="UTF-8"?>\n')
        assert "<PageCount>2</PageCount>" in text
        assert 'ImageWidth="8" ImageHeight="12"' in text
        # Unreadable image headers only lose their dimensions
        assert f'<Page Image="1" ImageSize="{len(FAKE_JPEG)}"/>' in text

    def test_comic_info_disabled_by_settings(self, make_epub, tmp_path):
        out = tmp_path / "out.cbz"
        settings = ConversionSettings(write_comic_info=False)
        with self._archive(make_epub, {"a.jpg": FAKE_JPEG}) as archive:
            report = write_cbz_package(
                archive, ["OEBPS/Images/a.jpg"], out, comic_info=ComicInfo(title="T"), settings=settings,
            )
        assert not report.comic_info_written
        with zipfile.ZipFile(out) as zf:
            assert COMIC_INFO_NAME not in zf.namelist()

    def test_unserializable_comic_info_omitted(self, make_epub, tmp_path, caplog):
        caplog.set_level(logging.ERROR, logger="epub2cbz")
        out = tmp_path / "out.cbz"
        with self._archive(make_epub, {"a.jpg": FAKE_JPEG}) as archive:
            report = write_cbz_package(
                archive, ["OEBPS/Images/a.jpg"], out, comic_info=ComicInfo(title="bad\x02"),
            )
        assert report.pages_written == 1
        assert not report.comic_info_written
        assert "ComicInfo" in caplog.text
        with zipfile.ZipFile(out) as zf:
            assert zf.namelist() == ["page0.jpg"]

    def test_stored_compression(self, make_epub, tmp_path):
        out = tmp_path / "out.cbz"
        settings = ConversionSettings(compression="stored", page_prefix="img")
        with self._archive(make_epub, {"a.jpg": FAKE_JPEG}) as archive:
            write_cbz_package(archive, ["OEBPS/Images/a.jpg"], out, settings=settings)
        with zipfile.ZipFile(out) as zf:
            assert zf.getinfo("img0.jpg").compress_type == zipfile.ZIP_STORED

    def test_output_is_reproducible(self, make_epub, tmp_path):
        first = tmp_path / "first.cbz"
        second = tmp_path / "second.cbz"
        with self._archive(make_epub, {"a.jpg": FAKE_JPEG}) as archive:
            for out in (first, second):
                write_cbz_package(archive, ["OEBPS/Images/a.jpg"], out, comic_info=ComicInfo(title="T"))
        assert first.read_bytes() == second.read_bytes()

    def test_empty_image_list_gives_empty_archive(self, make_epub, tmp_path):
        out = tmp_path / "out.cbz"
        with self._archive(make_epub, {"a.jpg": FAKE_JPEG}) as archive:
            report = write_cbz_package(archive, [], out)
        assert report.pages_written == 0
        with zipfile.ZipFile(out) as zf:
            assert zf.namelist() == []

    def test_unwritable_destination_raises(self, make_epub, tmp_path):
        out = tmp_path / "no-such-dir" / "out.cbz"
        with self._archive(make_epub, {"a.jpg": FAKE_JPEG}) as archive:
            with pytest.raises(OutputWriteError) as exc_info:
                write_cbz_package(archive, ["OEBPS/Images/a.jpg"], out)
        assert exc_info.value.file_path == out
