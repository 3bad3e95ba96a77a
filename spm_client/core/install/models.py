"""安装引擎数据模型

数据类:
- PackageIdentifier: 用户请求的 name / name@version
- PackageInfo: registry 返回的具体版本元信息
- InstallContext: 单次安装的配置 + 运行期去重表
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

STABLE = "stable"
MANIFEST_FILENAME = "package.json"
DEPENDENCY_SECTIONS = ("engines", "devDependencies", "dependencies")


def pkg_key(name: str, version: str = "") -> str:
    """去重键: name@version，版本未知时为 name@stable"""
    return f"{name}@{version or STABLE}"


def is_dependency_table(value: Any) -> bool:
    """依赖表必须是 {name: version} 的字符串映射"""
    return isinstance(value, dict) and all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    )


@dataclass(frozen=True)
class PackageIdentifier:
    """包标识，解析后不可变"""

    name: str
    version: str = ""

    @classmethod
    def parse(cls, raw: str) -> PackageIdentifier:
        """按最后一个 @ 拆分；开头的 @ 属于包名（如 @scope/pkg）"""
        raw = raw.strip()
        idx = raw.rfind("@")
        if idx <= 0:
            return cls(name=raw)
        return cls(name=raw[:idx], version=raw[idx + 1:])

    @property
    def key(self) -> str:
        return pkg_key(self.name, self.version)

    def __str__(self) -> str:
        return f"{self.name}@{self.version}" if self.version else self.name


@dataclass
class PackageInfo:
    """单个已解析包的元信息，以 registry 为准"""

    name: str
    version: str
    md5: str = ""
    filename: str = ""
    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)
    engines: dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return pkg_key(self.name, self.version)

    @property
    def archive_filename(self) -> str:
        return self.filename or f"{self.name}-{self.version}.tar.gz"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PackageInfo:
        """从 registry 返回的 JSON 构造；依赖段优先取 spm 子段"""
        spm = data.get("spm") or {}
        return cls(
            name=str(data["name"]),
            version=str(data["version"]),
            md5=data.get("md5") or "",
            filename=data.get("filename") or "",
            dependencies=dict(spm.get("dependencies") or data.get("dependencies") or {}),
            dev_dependencies=dict(
                spm.get("devDependencies") or data.get("devDependencies") or {}
            ),
            engines=dict(spm.get("engines") or data.get("engines") or {}),
        )


# downloadlist 的值: 新解析的包为 PackageInfo，目标目录已存在而跳过的为 PackageIdentifier
DownloadEntry = Union[PackageIdentifier, PackageInfo]


@dataclass
class InstallContext:
    """单次安装运行的上下文

    downloadlist 是本次运行唯一的共享可变状态，每次安装新建，
    在递归调用间按引用传递，不持久化。
    """

    base_dir: Path
    destination_dir: Path
    cache_dir: Path
    registry_url: str
    force: bool = False
    save: bool = False
    save_dev: bool = False
    downloadlist: dict[str, DownloadEntry] = field(default_factory=dict)

    @property
    def manifest_path(self) -> Path:
        return self.base_dir / MANIFEST_FILENAME

    def dest_path(self, name: str, version: str) -> Path:
        """安装目录: {destination}/{name}/{version}"""
        return self.destination_dir / name / version
