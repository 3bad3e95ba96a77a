"""包文件下载器

职责:
- 从 registry 流式下载归档到本地缓存
- 计算缓存文件的 md5，用于判断缓存是否可直接使用
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from pathlib import Path

import httpx

from spm_client.core.exceptions import TransferError
from spm_client.utils.net import validate_url_scheme

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


async def fetch(url: str, cache_path: Path, client: httpx.AsyncClient) -> Path:
    """流式下载 url 到 cache_path，成功返回 cache_path。

    任何失败（非 2xx、连接中断、写入错误）都抛 TransferError，
    并删除写了一半的文件，避免被当作有效缓存。
    """
    validate_url_scheme(url, context="download")
    cache_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("download %s", url)
    logger.debug("download from %s to %s", url, cache_path)

    try:
        async with client.stream("GET", url) as response:
            if response.status_code >= 400:
                raise TransferError(
                    f"下载失败: {url} - HTTP {response.status_code}"
                )
            with open(cache_path, "wb") as f:
                async for chunk in response.aiter_bytes(chunk_size=CHUNK_SIZE):
                    f.write(chunk)
    except TransferError:
        cache_path.unlink(missing_ok=True)
        raise
    except (httpx.HTTPError, OSError) as e:
        cache_path.unlink(missing_ok=True)
        raise TransferError(f"下载失败: {url} - {e}") from e

    logger.debug("已保存: %s", cache_path)
    return cache_path


def md5_file(path: Path) -> str:
    md5 = hashlib.md5()  # noqa: S324
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            md5.update(chunk)
    return md5.hexdigest()


async def cache_matches(cache_path: Path, expected_md5: str) -> bool:
    """缓存文件存在且 md5 与 registry 声明一致时返回 True"""
    if not expected_md5 or not cache_path.is_file():
        return False
    actual = await asyncio.to_thread(md5_file, cache_path)
    if actual != expected_md5:
        logger.debug(
            "缓存校验不一致 %s: 期望 %s, 实际 %s", cache_path, expected_md5, actual,
        )
        return False
    return True
