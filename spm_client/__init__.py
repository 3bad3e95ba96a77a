"""spm-client: spm 包安装客户端"""

__version__ = "0.3.0"
