"""包归档解压器

将缓存中的 .tar.gz 解压到 {destination}/{name}/{version}/。
先解到同级临时目录，成功后整体替换目标目录，失败时不留下半成品。
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tarfile
import tempfile
import zlib
from pathlib import Path

from spm_client.core.exceptions import ExtractionError

logger = logging.getLogger(__name__)


def _extract_sync(archive: Path, dest: Path) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=f".{dest.name}-", dir=str(dest.parent)))
    try:
        with tarfile.open(archive, "r:gz") as tar:
            tar.extractall(staging, filter="data")
        if dest.exists():
            shutil.rmtree(dest)
        staging.rename(dest)
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise


async def extract(archive: Path, dest: Path) -> Path:
    """解压 gzip tar 归档到 dest（保留相对路径），返回 dest"""
    logger.info("extract %s", archive)
    logger.debug("extract package from %s to %s", archive, dest)
    try:
        await asyncio.to_thread(_extract_sync, archive, dest)
    except (tarfile.TarError, zlib.error, EOFError, OSError) as e:
        raise ExtractionError(f"解压失败: {archive} - {e}") from e
    return dest
