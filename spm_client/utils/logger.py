"""spm-client 日志配置

命令行默认输出简洁的文本日志（事件标签 + 内容），
CI 环境可切换为结构化 JSON，每行一条记录。
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import TextIO

TEXT_FORMAT = "%(asctime)s [%(levelname)-7s] %(message)s"
DEBUG_FORMAT = "%(asctime)s [%(levelname)-7s] %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """结构化 JSON 日志格式器

    输出格式:
        {
            "timestamp": "2024-01-01T12:00:00+00:00",
            "level": "INFO",
            "logger": "spm_client.core.install.installer",
            "message": "installed spm_modules/foo/1.2.0",
            "exception": "traceback..." (仅在有异常时)
        }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    stream: TextIO | None = None,
) -> None:
    """配置根日志器

    参数:
        level: 日志级别字符串（DEBUG, INFO, WARNING, ERROR）
        json_output: 为 True 时使用 JSON 格式（适用于 CI）
        stream: 输出流，默认 stderr

    说明:
        - 自动清理已有 handlers，避免重复输出
        - DEBUG 级别下文本格式附带 logger 名称，便于定位模块
    """
    reset_logging()
    root = logging.getLogger()
    numeric = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(numeric)

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        fmt = DEBUG_FORMAT if numeric <= logging.DEBUG else TEXT_FORMAT
        handler.setFormatter(logging.Formatter(fmt))

    root.addHandler(handler)

    # httpx 每个请求都打 INFO，安装日志里只保留自己的事件
    logging.getLogger("httpx").setLevel(max(numeric, logging.WARNING))


def reset_logging() -> None:
    """清理根日志器上的所有 handlers，恢复到未配置状态"""
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
