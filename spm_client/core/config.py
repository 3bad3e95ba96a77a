"""集中配置管理

提供安装引擎的运行默认值（registry 地址、缓存目录、安装目录）。
支持从 YAML 文件 (~/.spm/spmrc.yml) 加载 + 环境变量覆盖 + 命令行显式参数覆盖。
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path

import yaml

from spm_client.core.exceptions import ConfigError
from spm_client.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY = "https://spmjs.io"
DEFAULT_DESTINATION = "spm_modules"

# 环境变量 -> 配置字段
_ENV_OVERRIDES = {
    "SPM_REGISTRY": "registry",
    "SPM_CACHE_DIR": "cache_dir",
}


def default_config_path() -> Path:
    return Path.home() / ".spm" / "spmrc.yml"


@dataclass
class Config:
    """客户端运行默认配置"""

    registry: str = DEFAULT_REGISTRY
    home_dir: str = field(default_factory=lambda: str(Path.home()))
    cache_dir: str = ""
    destination: str = DEFAULT_DESTINATION
    timeout: float = 60.0

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.cache_dir:
            self.cache_dir = str(Path(self.home_dir) / ".spm" / "cache")

    @classmethod
    def from_file(cls, path: str | Path | None = None) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认；随后应用环境变量覆盖"""
        path = Path(path) if path else default_config_path()
        try:
            data = load_yaml(path)
        except (ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"配置文件无效: {path} - {e}") from e
        except OSError as e:
            raise ConfigError(f"读取配置文件失败: {path} - {e}") from e

        known = {f.name for f in cls.__dataclass_fields__.values()} - {"extra"}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        for env_name, attr in _ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                matched[attr] = value
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    def to_dict(self) -> dict:
        return asdict(self)


# 进程级默认配置，仅保存运行默认值；每次安装的 downloadlist 不放在这里
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则从默认路径加载）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config.from_file()
    return _current


def init_config(path: str | Path | None = None) -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.debug("配置已加载: %s", path or default_config_path())
    return _current
