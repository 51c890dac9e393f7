"""
leasecore Package

基于对象存储条件写入的分布式互斥租约，包含：
- common: 通用模块（配置、日志、异常）
- domain: 领域层（租约内容、租约快照、更新结果）
- infrastructure: 基础设施适配（S3 客户端、租约存储客户端）
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "common",
    "domain",
    "infrastructure",
]


def __getattr__(name: str):
    if name in ("common", "domain", "infrastructure"):
        import importlib

        module = importlib.import_module(f"leasecore.{name}")
        globals()[name] = module
        return module
    raise AttributeError(f"module 'leasecore' has no attribute '{name}'")
