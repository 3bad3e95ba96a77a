"""package.json 读写与依赖解析

职责:
- 读写项目描述文件（JSON，2 空格缩进）
- --save / --save-dev 时把新安装的顶层依赖写回 spm 段
- 把 spm 段的依赖表展开为 name@range 列表
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from spm_client.core.exceptions import ManifestError
from spm_client.core.install.models import (
    DEPENDENCY_SECTIONS,
    MANIFEST_FILENAME,
    InstallContext,
    PackageInfo,
    is_dependency_table,
)
from spm_client.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)


def read_manifest(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ManifestError(f"找不到 {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(f"读取失败: {path} - {e}") from e
    except json.JSONDecodeError as e:
        raise ManifestError(f"JSON 格式错误: {path} - {e}") from e
    if not isinstance(data, dict):
        raise ManifestError(f"{path} 顶层必须是对象")
    return data


def write_manifest(path: Path, data: dict[str, Any]) -> None:
    try:
        atomic_write(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")
    except OSError as e:
        raise ManifestError(f"写入失败: {path} - {e}") from e


def _spm_section(data: dict[str, Any], source: Path | str) -> dict[str, Any]:
    spm = data.get("spm")
    if spm is None:
        return {}
    if not isinstance(spm, dict):
        raise ManifestError(f"{source} 的 spm 段必须是对象")
    return spm


def record_dependency(info: PackageInfo, ctx: InstallContext) -> None:
    """把 name -> version 写入 spm.dependencies 或 spm.devDependencies

    整个过程同步完成、中间没有 await，同一事件循环内的并发保存天然串行；
    多进程同时写同一文件时后写者覆盖。
    """
    section = "dependencies" if ctx.save else "devDependencies"
    path = ctx.manifest_path
    pkg = read_manifest(path)

    spm = _spm_section(pkg, path)
    table = spm.get(section)
    if table is None:
        table = spm[section] = {}
    elif not is_dependency_table(table):
        raise ManifestError(f"{path} 的 spm.{section} 必须是 name -> version 映射")
    pkg["spm"] = spm
    table[info.name] = info.version
    write_manifest(path, pkg)
    logger.info("saved %s %s@%s", section, info.name, info.version)


def parse_dependencies(
    pkg: Path | dict[str, Any] | PackageInfo, include_dev: bool = False,
) -> list[str]:
    """展开依赖表为 ["name@range", ...]

    合并顺序: engines -> devDependencies -> dependencies，后者覆盖前者；
    engines / devDependencies 仅在 include_dev 时参与（只用于项目根清单）。
    """
    if isinstance(pkg, PackageInfo):
        engines, dev, deps = pkg.engines, pkg.dev_dependencies, pkg.dependencies
    else:
        source = pkg if isinstance(pkg, Path) else MANIFEST_FILENAME
        data = read_manifest(pkg) if isinstance(pkg, Path) else pkg
        spm = _spm_section(data, source)
        for section in DEPENDENCY_SECTIONS:
            value = spm.get(section)
            if value is not None and not is_dependency_table(value):
                raise ManifestError(f"{source} 的 spm.{section} 必须是 name -> version 映射")
        engines = spm.get("engines") or {}
        dev = spm.get("devDependencies") or {}
        deps = spm.get("dependencies") or {}

    merged: dict[str, str] = {}
    if include_dev:
        merged.update(engines)
        merged.update(dev)
    merged.update(deps)
    return [f"{name}@{version}" if version else name for name, version in merged.items()]
