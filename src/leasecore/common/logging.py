"""日志配置模块

基于 loguru，所有输出都经过脱敏过滤器，避免 S3 凭据和签名头进入日志。
日志记录携带 component 字段，由 get_logger(name) 绑定。
"""

import re
import sys
from typing import Any

from loguru import logger

from leasecore.common.config import settings

REDACTED = "***REDACTED***"
DEFAULT_COMPONENT = "leasecore"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[component]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[component]} | "
    "{name}:{line} - {message}"
)

# (pattern, replacement)
SENSITIVE_PATTERNS = [
    # S3 访问密钥 / 私密密钥
    (
        re.compile(
            r'((?:aws[_-]?)?(?:access[_-]?key(?:[_-]?id)?|secret[_-]?(?:access[_-]?)?key))'
            r'["\']?\s*[:=]\s*["\']?[a-zA-Z0-9_/+\-]{8,}["\']?',
            re.IGNORECASE,
        ),
        rf"\1={REDACTED}",
    ),
    # STS 会话令牌
    (
        re.compile(
            r'((?:session[_-]?)?token)["\']?\s*[:=]\s*["\']?[a-zA-Z0-9_/+=\-\.]{20,}["\']?',
            re.IGNORECASE,
        ),
        rf"\1={REDACTED}",
    ),
    # SigV4 授权头
    (
        re.compile(r'(Authorization)["\']?\s*[:=]\s*["\']?[^"\'\n]{20,}["\']?', re.IGNORECASE),
        rf"\1={REDACTED}",
    ),
    # 端点 URL 中的凭据
    (
        re.compile(r"(https?|s3)://([^:/@\s]+):[^@\s]+@", re.IGNORECASE),
        r"\1://\2:***@",
    ),
]

SENSITIVE_KEYS = frozenset({"secret", "token", "access_key", "accesskey", "authorization", "credential"})


def sanitize_log_message(message: str) -> str:
    """对日志消息进行敏感信息脱敏"""
    if not message:
        return message
    for pattern, replacement in SENSITIVE_PATTERNS:
        message = pattern.sub(replacement, message)
    return message


def _is_sensitive_key(key: Any, sensitive_keys: frozenset[str]) -> bool:
    key_lower = str(key).lower()
    return any(sk in key_lower for sk in sensitive_keys)


def _sanitize_value(value: Any, sensitive_keys: frozenset[str]) -> Any:
    if isinstance(value, dict):
        return sanitize_dict(value, sensitive_keys)
    if isinstance(value, (list, tuple)):
        return type(value)(_sanitize_value(item, sensitive_keys) for item in value)
    if isinstance(value, str):
        return sanitize_log_message(value)
    return value


def sanitize_dict(data: dict[str, Any], sensitive_keys: frozenset[str] = SENSITIVE_KEYS) -> dict[str, Any]:
    """对字典数据进行敏感信息脱敏，键名命中时整值替换，否则递归处理"""
    return {
        key: REDACTED if _is_sensitive_key(key, sensitive_keys) else _sanitize_value(value, sensitive_keys)
        for key, value in data.items()
    }


class SanitizingFilter:
    """日志脱敏过滤器，直接改写 loguru 的 record"""

    def __init__(self, sensitive_keys: frozenset[str] = SENSITIVE_KEYS):
        self.sensitive_keys = sensitive_keys

    def __call__(self, record: dict[str, Any]) -> bool:
        record["message"] = sanitize_log_message(record.get("message", ""))
        extra = record.get("extra")
        if isinstance(extra, dict):
            record["extra"] = sanitize_dict(extra, self.sensitive_keys)
        return True


def setup_logging(
    level: str | None = None,
    log_to_file: bool | None = None,
    log_file_path: str | None = None,
) -> None:
    """初始化日志系统

    替换 loguru 的全部 handler。文件输出按大小轮转，父目录由 loguru 自动创建。

    Args:
        level: 日志级别，默认使用 settings.LOG_LEVEL
        log_to_file: 是否输出到文件，默认使用 settings.LOG_TO_FILE
        log_file_path: 日志文件路径，默认使用 settings.LOG_FILE_PATH
    """
    log_level = level or settings.LOG_LEVEL
    should_log_to_file = log_to_file if log_to_file is not None else settings.LOG_TO_FILE
    sanitizing_filter = SanitizingFilter()

    handlers: list[dict[str, Any]] = [
        {
            "sink": sys.stderr,
            "format": CONSOLE_FORMAT,
            "level": log_level,
            "colorize": True,
            "filter": sanitizing_filter,
        }
    ]
    if should_log_to_file:
        handlers.append(
            {
                "sink": log_file_path or settings.LOG_FILE_PATH,
                "format": FILE_FORMAT,
                "level": log_level,
                "rotation": "100 MB",
                "retention": "14 days",
                "compression": "zip",
                "encoding": "utf-8",
                "enqueue": True,
                "filter": sanitizing_filter,
            }
        )

    logger.configure(handlers=handlers, extra={"component": DEFAULT_COMPONENT})
    logger.info(f"日志初始化完成: level={log_level}, file={should_log_to_file}, sanitize=True")


def get_logger(name: str | None = None):
    """获取绑定了 component 的 logger"""
    return logger.bind(component=name or DEFAULT_COMPONENT)
