"""包安装引擎

模块划分:
- models.py: 数据模型 (PackageIdentifier / PackageInfo / InstallContext)
- registry.py: registry 元信息查询
- fetcher.py: 归档下载 + 缓存校验
- extractor.py: 归档解压
- manifest.py: package.json 读写与依赖展开
- installer.py: 递归安装 + 运行入口
"""

from spm_client.core.install.installer import (
    Installer,
    exist_in_dest,
    install,
    list_installed,
    run_install,
)
from spm_client.core.install.models import (
    InstallContext,
    PackageIdentifier,
    PackageInfo,
    pkg_key,
)
from spm_client.core.install.registry import RegistryClient

__all__ = [
    "InstallContext",
    "Installer",
    "PackageIdentifier",
    "PackageInfo",
    "RegistryClient",
    "exist_in_dest",
    "install",
    "list_installed",
    "pkg_key",
    "run_install",
]
