"""测试共享工具: 内存版 registry + 归档构造

FakeRegistry 通过 httpx.MockTransport 提供:
  GET /repository/<name>/                     包索引（stable 版本 + 全部版本）
  GET /repository/<name>/<version|range>/     单个版本元信息（^ / ~ 取同主版本最高）
  GET /repository/<name>/<version>/<file>     归档内容
并记录每一次请求路径，供断言网络访问次数。
"""

from __future__ import annotations

import hashlib
import io
import tarfile
from pathlib import Path

import httpx
import pytest

from spm_client.core.config import Config

REGISTRY_URL = "https://registry.test"


def make_tarball(files: dict[str, str]) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, content in files.items():
            data = content.encode("utf-8")
            member = tarfile.TarInfo(name)
            member.size = len(data)
            tar.addfile(member, io.BytesIO(data))
    return buf.getvalue()


def _version_tuple(v: str) -> tuple[int, ...]:
    return tuple(int(x) for x in v.split("."))


class FakeRegistry:
    def __init__(self, base: str = REGISTRY_URL) -> None:
        self.base = base
        self.versions: dict[str, dict[str, dict]] = {}
        self.stable: dict[str, str] = {}
        self.archives: dict[str, bytes] = {}
        self.overrides: dict[str, httpx.Response] = {}
        self.requests: list[str] = []

    def add(
        self,
        name: str,
        version: str,
        dependencies: dict[str, str] | None = None,
        files: dict[str, str] | None = None,
        archive: bytes | None = None,
    ) -> dict:
        data = archive if archive is not None else make_tarball(
            files or {"index.js": f"module.exports = '{name}@{version}';\n"}
        )
        filename = f"{name}-{version}.tar.gz"
        info = {
            "name": name,
            "version": version,
            "md5": hashlib.md5(data).hexdigest(),
            "filename": filename,
            "spm": {"dependencies": dependencies or {}},
        }
        self.versions.setdefault(name, {})[version] = info
        current = self.stable.get(name)
        if current is None or _version_tuple(version) > _version_tuple(current):
            self.stable[name] = version
        self.archives[f"/repository/{name}/{version}/{filename}"] = data
        return info

    def archive_path(self, name: str, version: str) -> str:
        return f"/repository/{name}/{version}/{name}-{version}.tar.gz"

    def archive_bytes(self, name: str, version: str) -> bytes:
        return self.archives[self.archive_path(name, version)]

    def count(self, path: str) -> int:
        return self.requests.count(path)

    @property
    def archive_requests(self) -> list[str]:
        return [p for p in self.requests if p.endswith(".tar.gz")]

    def _match(self, name: str, spec: str) -> dict | None:
        versions = self.versions.get(name, {})
        if spec in versions:
            return versions[spec]
        if spec[:1] in ("^", "~"):
            major = spec[1:].split(".")[0]
            candidates = [v for v in versions if v.split(".")[0] == major]
            if candidates:
                return versions[max(candidates, key=_version_tuple)]
        return None

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(path)
        if path in self.overrides:
            return self.overrides[path]

        parts = [p for p in path.split("/") if p]
        if len(parts) == 2 and parts[1] in self.versions:
            name = parts[1]
            return httpx.Response(200, json={
                "name": name,
                "version": self.stable[name],
                "packages": self.versions[name],
            })
        if len(parts) == 3:
            info = self._match(parts[1], parts[2])
            if info is not None:
                return httpx.Response(200, json=info)
        if len(parts) == 4 and path in self.archives:
            return httpx.Response(200, content=self.archives[path])
        return httpx.Response(404, json={"message": "not found"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture()
def fake_registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture()
def config(tmp_path: Path) -> Config:
    return Config(registry=REGISTRY_URL, home_dir=str(tmp_path / "home"))


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    base = tmp_path / "project"
    base.mkdir()
    return base
