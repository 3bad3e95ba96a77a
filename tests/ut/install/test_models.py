"""数据模型测试：标识解析 / 去重键 / registry 数据映射"""

from __future__ import annotations

from pathlib import Path

import pytest

from spm_client.core.install.models import (
    InstallContext,
    PackageIdentifier,
    PackageInfo,
    pkg_key,
)


class TestPackageIdentifier:
    @pytest.mark.parametrize(("raw", "name", "version"), [
        ("foo", "foo", ""),
        ("foo@1.2.0", "foo", "1.2.0"),
        ("foo@^1.0.0", "foo", "^1.0.0"),
        ("@scope/foo", "@scope/foo", ""),
        ("@scope/foo@2.0.0", "@scope/foo", "2.0.0"),
        ("  bar@1.0.0 ", "bar", "1.0.0"),
    ])
    def test_parse(self, raw: str, name: str, version: str) -> None:
        ident = PackageIdentifier.parse(raw)
        assert (ident.name, ident.version) == (name, version)

    def test_immutable(self) -> None:
        ident = PackageIdentifier.parse("foo@1.0.0")
        with pytest.raises(AttributeError):
            ident.version = "2.0.0"  # type: ignore[misc]

    def test_key_and_str(self) -> None:
        assert PackageIdentifier.parse("foo").key == "foo@stable"
        assert PackageIdentifier.parse("foo@1.0.0").key == "foo@1.0.0"
        assert str(PackageIdentifier.parse("foo")) == "foo"
        assert str(PackageIdentifier.parse("foo@1.0.0")) == "foo@1.0.0"


def test_pkg_key() -> None:
    assert pkg_key("foo") == "foo@stable"
    assert pkg_key("foo", "1.2.0") == "foo@1.2.0"


class TestPackageInfo:
    def test_from_dict_prefers_spm_section(self) -> None:
        info = PackageInfo.from_dict({
            "name": "foo",
            "version": "1.2.0",
            "md5": "abc",
            "dependencies": {"ignored": "1.0.0"},
            "spm": {
                "dependencies": {"bar": "^1.0.0"},
                "devDependencies": {"expect": "0.3.1"},
                "engines": {"seajs": "2.2.0"},
            },
        })
        assert info.key == "foo@1.2.0"
        assert info.md5 == "abc"
        assert info.dependencies == {"bar": "^1.0.0"}
        assert info.dev_dependencies == {"expect": "0.3.1"}
        assert info.engines == {"seajs": "2.2.0"}

    def test_from_dict_top_level_fallback(self) -> None:
        info = PackageInfo.from_dict({
            "name": "foo", "version": "1.0.0", "dependencies": {"bar": "1.0.0"},
        })
        assert info.dependencies == {"bar": "1.0.0"}
        assert info.dev_dependencies == {}

    def test_archive_filename(self) -> None:
        assert PackageInfo("foo", "1.2.0").archive_filename == "foo-1.2.0.tar.gz"
        assert PackageInfo("foo", "1.2.0", filename="x.tgz").archive_filename == "x.tgz"


def test_context_paths(tmp_path: Path) -> None:
    ctx = InstallContext(
        base_dir=tmp_path,
        destination_dir=tmp_path / "spm_modules",
        cache_dir=tmp_path / "cache",
        registry_url="https://registry.test",
    )
    assert ctx.manifest_path == tmp_path / "package.json"
    assert ctx.dest_path("foo", "1.0.0") == tmp_path / "spm_modules" / "foo" / "1.0.0"
    assert ctx.downloadlist == {}
