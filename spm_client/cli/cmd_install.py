"""CLI: 包安装命令"""

from __future__ import annotations

import asyncio
from pathlib import Path

import click

from spm_client.core.config import init_config
from spm_client.core.exceptions import InstallError, SpmError


def register(group: click.Group) -> None:
    group.add_command(install)
    group.add_command(info)
    group.add_command(list_packages)


def _fail(exc: SpmError) -> click.ClickException:
    message = f"[{exc.code}] {exc}"
    if isinstance(exc, InstallError):
        lines = [message] + [f"  {k}: {v}" for k, v in exc.failures.items()]
        message = "\n".join(lines)
    return click.ClickException(message)


@click.command()
@click.argument("name", required=False)
@click.option("--force", "-f", is_flag=True, help="忽略已安装目录和缓存，强制重新下载")
@click.option("--save", "-S", is_flag=True, help="写入 package.json 的 spm.dependencies")
@click.option("--save-dev", "-D", "save_dev", is_flag=True, help="写入 spm.devDependencies")
@click.option("--base", default=None, help="项目根目录（默认当前目录）")
@click.option("--destination", "-d", default=None, help="安装目录（相对于项目根目录）")
@click.option("--registry", "-r", default=None, help="registry 地址")
@click.option("--cache", default=None, help="归档缓存目录")
@click.option("--config", "config_path", default=None, help="spmrc 配置文件路径")
def install(
    name: str | None, force: bool, save: bool, save_dev: bool,
    base: str | None, destination: str | None, registry: str | None,
    cache: str | None, config_path: str | None,
) -> None:
    """安装包 NAME（name 或 name@version）；不指定时安装 package.json 中的全部依赖"""
    from spm_client.core.install import run_install

    try:
        cfg = init_config(config_path)
        ctx = run_install(
            name, config=cfg, base=base, destination=destination,
            cache=cache, registry=registry,
            force=force, save=save, save_dev=save_dev,
        )
    except SpmError as e:
        raise _fail(e) from e

    if not ctx.downloadlist:
        click.echo("没有需要安装的包。")
        return
    for key in sorted(ctx.downloadlist):
        click.echo(f"  {key}")


@click.command()
@click.argument("name")
@click.option("--registry", "-r", default=None, help="registry 地址")
@click.option("--config", "config_path", default=None, help="spmrc 配置文件路径")
def info(name: str, registry: str | None, config_path: str | None) -> None:
    """查询包 NAME 在 registry 上的元信息"""
    from spm_client.core.install import PackageIdentifier, RegistryClient

    async def _query():
        async with RegistryClient(registry or cfg.registry, timeout=cfg.timeout) as client:
            return await client.info(PackageIdentifier.parse(name))

    try:
        cfg = init_config(config_path)
        pinfo = asyncio.run(_query())
    except SpmError as e:
        raise _fail(e) from e

    click.echo(f"{pinfo.name}@{pinfo.version}")
    click.echo(f"  md5:      {pinfo.md5 or '-'}")
    click.echo(f"  filename: {pinfo.archive_filename}")
    if pinfo.dependencies:
        click.echo("  dependencies:")
        for dep, ver in sorted(pinfo.dependencies.items()):
            click.echo(f"    {dep}: {ver}")


@click.command(name="ls")
@click.option("--base", default=".", help="项目根目录")
@click.option("--destination", "-d", default=None, help="安装目录（相对于项目根目录）")
@click.option("--config", "config_path", default=None, help="spmrc 配置文件路径")
def list_packages(base: str, destination: str | None, config_path: str | None) -> None:
    """列出安装目录中已安装的包"""
    from spm_client.core.install import list_installed

    try:
        cfg = init_config(config_path)
    except SpmError as e:
        raise _fail(e) from e

    dest = Path(base) / (destination or cfg.destination)
    installed = list_installed(dest)
    if not installed:
        click.echo(f"{dest} 下没有已安装的包。")
        return
    for key in installed:
        click.echo(f"  {key}")
