"""安装引擎

安装一个包的流程:

  1. 解析标识 name@version
  2. 目标目录 {destination}/{name}/{version} 已存在 → found，跳过
  3. 本次运行的 downloadlist 已有该包 → 跳过（多条依赖路径指向同一个包）
  4. 向 registry 查询元信息，得到具体版本，登记到 downloadlist
  5. 顶层请求且带 --save / --save-dev 时写回 package.json
  6. 缓存文件 md5 一致则直接解压，否则从 registry 下载后解压
  7. 并发安装该包的 dependencies（不传递 save 标记）

用法:
    from spm_client.core.install import run_install

    ctx = run_install("foo@1.2.0", save=True)
    print(sorted(ctx.downloadlist))
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

import httpx

from spm_client.core.config import Config, get_config
from spm_client.core.exceptions import InstallError, ManifestError, SpmError
from spm_client.core.install.extractor import extract
from spm_client.core.install.fetcher import cache_matches, md5_file
from spm_client.core.install.manifest import parse_dependencies, record_dependency
from spm_client.core.install.models import (
    InstallContext,
    PackageIdentifier,
    PackageInfo,
    pkg_key,
)
from spm_client.core.install.registry import RegistryClient

logger = logging.getLogger(__name__)


def exist_in_dest(pkg: PackageIdentifier | PackageInfo, ctx: InstallContext) -> bool:
    """目标目录已有该 name+version 且未指定 --force 时返回 True。

    命中时把 pkg 登记进 downloadlist（已存在则不覆盖），后续去重检查据此跳过。
    版本为空时无法定位目录，一律返回 False。
    """
    if ctx.force or not pkg.version:
        return False
    dest = ctx.dest_path(pkg.name, pkg.version)
    if not dest.is_dir():
        return False
    logger.info("found %s/%s", pkg.name, pkg.version)
    logger.debug("package %s found in %s", pkg.key, dest)
    ctx.downloadlist.setdefault(pkg.key, pkg)
    return True


def list_installed(destination: Path) -> list[str]:
    """扫描安装目录，返回已安装的 name@version 列表（支持 @scope/name）"""
    if not destination.is_dir():
        return []

    def _names(root: Path) -> list[Path]:
        found = []
        for d in sorted(root.iterdir()):
            if not d.is_dir() or d.name.startswith("."):
                continue
            if d.name.startswith("@"):
                found.extend(p for p in sorted(d.iterdir()) if p.is_dir())
            else:
                found.append(d)
        return found

    installed = []
    for pkg_dir in _names(destination):
        name = pkg_dir.relative_to(destination).as_posix()
        installed.extend(
            pkg_key(name, v.name) for v in sorted(pkg_dir.iterdir())
            if v.is_dir() and not v.name.startswith(".")
        )
    return installed


def _display_path(path: Path) -> str:
    try:
        return os.path.relpath(path, Path.cwd())
    except ValueError:
        return str(path)


class Installer:
    """递归安装器，registry 客户端在整个运行期间共享"""

    def __init__(self, registry: RegistryClient) -> None:
        self.registry = registry

    async def install_package(
        self, identifier: str, ctx: InstallContext, is_root: bool = False,
    ) -> None:
        """安装单个包及其依赖子树"""
        ident = PackageIdentifier.parse(identifier)

        if exist_in_dest(ident, ctx):
            return

        key = ident.key
        if key in ctx.downloadlist:
            logger.debug("package %s has been in downloadlist", key)
            return

        logger.info("install %s", key)
        info = await self.registry.info(ident)

        # 解析期间其他分支可能已登记同一个具体版本
        key = info.key
        if key in ctx.downloadlist:
            logger.debug("package %s resolved by another branch", key)
            return
        ctx.downloadlist[key] = info
        logger.debug("get package info from %s: %s", ctx.registry_url, info)

        save_error: ManifestError | None = None
        if is_root and (ctx.save or ctx.save_dev):
            try:
                record_dependency(info, ctx)
            except ManifestError as e:
                logger.error("保存依赖失败: %s", e)
                save_error = e

        if not exist_in_dest(info, ctx):
            await self._materialize(info, ctx)

        children = parse_dependencies(info)
        try:
            if children:
                logger.info("depends %s", ", ".join(children))
                await self.install_all(children, ctx)
        except InstallError as e:
            if save_error is not None:
                e.failures[identifier] = save_error
            raise
        if save_error is not None:
            raise save_error

    async def _materialize(self, info: PackageInfo, ctx: InstallContext) -> None:
        """缓存优先: md5 一致的缓存直接解压，否则下载覆盖缓存后解压"""
        dest = ctx.dest_path(info.name, info.version)
        cache_path = ctx.cache_dir / info.archive_filename

        if not ctx.force and await cache_matches(cache_path, info.md5):
            logger.debug("use cache %s", cache_path)
        else:
            await self.registry.download(info, cache_path)
            if info.md5:
                actual = await asyncio.to_thread(md5_file, cache_path)
                if actual != info.md5:
                    logger.warning(
                        "md5 与 registry 不一致 %s: 期望 %s, 实际 %s",
                        cache_path.name, info.md5, actual,
                    )

        await extract(cache_path, dest)
        logger.info("installed %s", _display_path(dest))

    async def install_all(
        self, identifiers: list[str], ctx: InstallContext, is_root: bool = False,
    ) -> None:
        """并发安装一组同级包。

        单个分支失败不影响其他分支继续执行；全部结束后把失败汇总成
        InstallError 向上抛出。非 SpmError 的异常属于程序缺陷，原样抛出。
        """
        results = await asyncio.gather(
            *(self.install_package(i, ctx, is_root) for i in identifiers),
            return_exceptions=True,
        )

        failures: dict[str, SpmError] = {}
        for identifier, result in zip(identifiers, results):
            if isinstance(result, InstallError):
                failures.update(result.failures)
            elif isinstance(result, SpmError):
                logger.error("安装失败 %s: %s", identifier, result)
                failures[identifier] = result
            elif isinstance(result, BaseException):
                raise result

        if failures:
            raise InstallError(
                f"{len(failures)} 个包安装失败: {', '.join(failures)}",
                failures=failures,
            )


def build_context(
    *,
    base: str | Path | None = None,
    destination: str | Path | None = None,
    cache: str | Path | None = None,
    registry: str | None = None,
    force: bool = False,
    save: bool = False,
    save_dev: bool = False,
    config: Config | None = None,
) -> InstallContext:
    """显式参数优先，未指定的取配置默认值；destination 相对于 base"""
    cfg = config or get_config()
    base_dir = Path(base).resolve() if base else Path.cwd()
    return InstallContext(
        base_dir=base_dir,
        destination_dir=base_dir / (destination or cfg.destination),
        cache_dir=Path(cache or cfg.cache_dir).expanduser(),
        registry_url=registry or cfg.registry,
        force=force,
        save=save,
        save_dev=save_dev,
    )


async def install(
    name: str | None = None,
    *,
    client: httpx.AsyncClient | None = None,
    config: Config | None = None,
    **options,
) -> InstallContext:
    """一次安装运行的入口，返回本次运行的上下文（downloadlist 即安装结果）

    name 为空时安装 package.json 中 spm 段的全部依赖（含 devDependencies
    与 engines），此时忽略 save / save_dev。
    """
    cfg = config or get_config()
    ctx = build_context(config=cfg, **options)

    if name:
        packages = [name]
    else:
        ctx.save = ctx.save_dev = False
        packages = parse_dependencies(ctx.manifest_path, include_dev=True)

    if not packages:
        logger.debug("no package to install")
        return ctx

    logger.debug("install packages %s", ", ".join(packages))
    async with RegistryClient(ctx.registry_url, client=client, timeout=cfg.timeout) as registry:
        await Installer(registry).install_all(packages, ctx, is_root=True)
    return ctx


def run_install(name: str | None = None, **kwargs) -> InstallContext:
    """同步调用入口（CLI 使用）"""
    return asyncio.run(install(name, **kwargs))
