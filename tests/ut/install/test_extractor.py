"""解压器测试"""

from __future__ import annotations

import asyncio
import io
import tarfile
from pathlib import Path

import pytest

from spm_client.core.exceptions import ExtractionError
from spm_client.core.install.extractor import extract
from tests.conftest import make_tarball


def _archive(tmp_path: Path, data: bytes) -> Path:
    path = tmp_path / "pkg.tar.gz"
    path.write_bytes(data)
    return path


class TestExtract:
    def test_preserves_relative_paths(self, tmp_path: Path) -> None:
        archive = _archive(tmp_path, make_tarball({
            "package.json": "{}",
            "dist/index.js": "x",
            "dist/css/a.css": "y",
        }))
        dest = tmp_path / "spm_modules" / "foo" / "1.0.0"

        assert asyncio.run(extract(archive, dest)) == dest
        assert (dest / "package.json").read_text() == "{}"
        assert (dest / "dist" / "index.js").read_text() == "x"
        assert (dest / "dist" / "css" / "a.css").read_text() == "y"

    def test_replaces_previous_content(self, tmp_path: Path) -> None:
        dest = tmp_path / "out"
        dest.mkdir()
        (dest / "old.js").write_text("old")

        asyncio.run(extract(_archive(tmp_path, make_tarball({"new.js": "new"})), dest))

        assert (dest / "new.js").is_file()
        assert not (dest / "old.js").exists()

    def test_corrupt_archive(self, tmp_path: Path) -> None:
        dest = tmp_path / "out"
        with pytest.raises(ExtractionError):
            asyncio.run(extract(_archive(tmp_path, b"garbage"), dest))
        assert not dest.exists()
        assert [p.name for p in tmp_path.iterdir()] == ["pkg.tar.gz"]

    def test_truncated_archive(self, tmp_path: Path) -> None:
        data = make_tarball({"a.js": "a" * 10_000, "b.js": "b" * 10_000})
        with pytest.raises(ExtractionError):
            asyncio.run(extract(_archive(tmp_path, data[: len(data) // 2]), tmp_path / "out"))
        assert not (tmp_path / "out").exists()

    def test_rejects_path_escape(self, tmp_path: Path) -> None:
        buf = io.BytesIO()
        with tarfile.open(fileobj=buf, mode="w:gz") as tar:
            member = tarfile.TarInfo("../evil.js")
            member.size = 4
            tar.addfile(member, io.BytesIO(b"evil"))

        with pytest.raises(ExtractionError):
            asyncio.run(extract(_archive(tmp_path, buf.getvalue()), tmp_path / "out" / "pkg"))
        assert not (tmp_path / "out" / "evil.js").exists()
