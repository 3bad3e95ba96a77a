"""Registry 客户端

职责:
- 查询包元信息（带版本 / 不带版本取 stable）
- 拼接归档下载地址
- 持有共享的 httpx.AsyncClient，供下载复用连接
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import httpx

from spm_client.core.exceptions import ResolutionError
from spm_client.core.install.fetcher import fetch
from spm_client.core.install.models import (
    DEPENDENCY_SECTIONS,
    PackageIdentifier,
    PackageInfo,
    is_dependency_table,
)
from spm_client.utils.net import join_url, validate_url_scheme

logger = logging.getLogger(__name__)


class RegistryClient:
    """spm registry 的异步客户端

    用法:
        async with RegistryClient("https://spmjs.io") as registry:
            info = await registry.info(PackageIdentifier.parse("foo@1.2.0"))
    """

    def __init__(
        self,
        registry_url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ) -> None:
        validate_url_scheme(registry_url, context="registry")
        self.registry_url = registry_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> RegistryClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # 元信息
    # ------------------------------------------------------------------

    def info_url(self, ident: PackageIdentifier) -> str:
        if ident.version:
            return join_url(self.registry_url, "repository", ident.name, ident.version) + "/"
        return join_url(self.registry_url, "repository", ident.name) + "/"

    async def info(self, ident: PackageIdentifier) -> PackageInfo:
        """查询包元信息，返回的 version 一定是具体版本"""
        url = self.info_url(ident)
        logger.debug("query package info %s", url)
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            raise ResolutionError(f"查询包信息失败: {ident} - {e}") from e

        if response.status_code == 404:
            raise ResolutionError(f"包不存在: {ident} ({url})")
        if response.status_code >= 400:
            raise ResolutionError(
                f"查询包信息失败: {ident} - HTTP {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ResolutionError(f"包信息不是合法 JSON: {ident} - {e}") from e

        return self._parse_info(ident, body)

    @staticmethod
    def _parse_info(ident: PackageIdentifier, body: Any) -> PackageInfo:
        if not isinstance(body, dict):
            raise ResolutionError(f"包信息格式错误: {ident}")

        # 不带版本时返回的是包索引 {version, packages: {ver: {...}}}
        packages = body.get("packages")
        if not ident.version and isinstance(packages, dict):
            stable = body.get("version")
            if not stable or stable not in packages:
                raise ResolutionError(f"包 {ident.name} 没有可用的稳定版本")
            body = packages[stable]
            if not isinstance(body, dict):
                raise ResolutionError(f"包信息格式错误: {ident.name}@{stable}")

        if not body.get("name") or not body.get("version"):
            raise ResolutionError(f"包信息缺少 name/version 字段: {ident}")
        RegistryClient._check_shape(f"{body['name']}@{body['version']}", body)
        return PackageInfo.from_dict(body)

    @staticmethod
    def _check_shape(label: str, body: dict[str, Any]) -> None:
        """依赖段必须是 name -> version 映射；归档文件名不能带路径"""
        spm = body.get("spm")
        if spm is not None and not isinstance(spm, dict):
            raise ResolutionError(f"包信息 spm 段不是对象: {label}")
        for section in DEPENDENCY_SECTIONS:
            for value in ((spm or {}).get(section), body.get(section)):
                if value is not None and not is_dependency_table(value):
                    raise ResolutionError(f"包信息 {section} 段格式错误: {label}")

        filename = body.get("filename")
        if filename is None:
            return
        if (
            not isinstance(filename, str)
            or "/" in filename
            or "\\" in filename
            or filename in (".", "..")
        ):
            raise ResolutionError(f"非法的归档文件名 {filename!r}: {label}")

    # ------------------------------------------------------------------
    # 下载
    # ------------------------------------------------------------------

    def archive_url(self, info: PackageInfo) -> str:
        """归档地址: {registry}/repository/{name}/{version}/{filename}"""
        return join_url(
            self.registry_url, "repository", info.name, info.version, info.archive_filename,
        )

    async def download(self, info: PackageInfo, cache_path: Path) -> Path:
        return await fetch(self.archive_url(info), cache_path, self.client)
