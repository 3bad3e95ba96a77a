"""spm 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

import os

import click

from spm_client import __version__
from spm_client.utils.logger import setup_logging


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="输出调试日志")
def main(verbose: bool) -> None:
    """spm - 包安装客户端"""
    setup_logging(
        level="DEBUG" if verbose else os.getenv("SPM_LOG_LEVEL", "INFO"),
        json_output=os.getenv("SPM_LOG_JSON", "") == "1",
    )


# 注册各领域子命令
from spm_client.cli.cmd_install import register as _reg_install  # noqa: E402

_reg_install(main)
