"""统一异常体系

所有业务异常继承 SpmError，替代散落的 ValueError / OSError。
CLI 层据此输出友好提示；安装引擎据此区分解析、传输、解压、清单四类失败。
"""

from __future__ import annotations


class SpmError(Exception):
    """客户端基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(SpmError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(SpmError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class ResolutionError(SpmError):
    """包元信息查询失败或返回数据不完整"""

    code = "RESOLUTION_ERROR"


class TransferError(SpmError):
    """包文件下载失败（网络中断、非 2xx 响应、写入失败）"""

    code = "TRANSFER_ERROR"


class ExtractionError(SpmError):
    """归档损坏或解压失败"""

    code = "EXTRACTION_ERROR"


class ManifestError(SpmError):
    """package.json 缺失或无法解析"""

    code = "MANIFEST_ERROR"


class InstallError(SpmError):
    """一次安装中有分支失败，failures 记录 {pkg_key: 原始异常}"""

    code = "INSTALL_ERROR"

    def __init__(self, message: str, failures: dict[str, SpmError] | None = None) -> None:
        super().__init__(message)
        self.failures = failures or {}
