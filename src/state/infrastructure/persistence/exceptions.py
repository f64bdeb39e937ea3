"""持久化与版本迁移异常定义。

层次结构:
- PersistenceError
  - CorruptionError            存储记录存在但无法解码
  - InvalidStateError          VersionedState 契约校验失败
  - PersistConfigError         持久化配置缺失或非法
  - MigrationError
    - DuplicateVersionError    迁移表中版本号重复（启动期致命错误）
    - RegistryFrozenError      冻结后的注册表不允许再注册
    - DowngradeNotSupportedError  持久化版本高于当前代码版本
    - MigrationStepFailedError    某个迁移函数执行失败
"""

from typing import Optional


class PersistenceError(Exception):
    """持久化相关异常基类"""


class CorruptionError(PersistenceError):
    """存储中的状态记录存在但无法解码。"""

    def __init__(self, key: str, original_error: Optional[Exception] = None) -> None:
        self.key = key
        self.original_error = original_error
        detail = f": {original_error}" if original_error is not None else ""
        super().__init__(f"Persisted state '{key}' is corrupted{detail}")


class InvalidStateError(PersistenceError, ValueError):
    """VersionedState 的数据或版本号不满足契约。"""


class PersistConfigError(PersistenceError):
    """持久化配置缺失或非法。"""


class MigrationError(PersistenceError):
    """版本迁移异常基类"""


class DuplicateVersionError(MigrationError, ValueError):
    """同一版本号的迁移函数被重复注册。"""

    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"Migration for version {version} already registered")


class RegistryFrozenError(MigrationError):
    """注册表已冻结，不允许继续注册迁移。"""

    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(
            f"Cannot register migration {version}: registry is frozen"
        )


class DowngradeNotSupportedError(MigrationError):
    """持久化状态来自更新的版本，当前代码无法降级。"""

    def __init__(self, persisted_version: int, target_version: int) -> None:
        self.persisted_version = persisted_version
        self.target_version = target_version
        super().__init__(
            f"Cannot downgrade state from version {persisted_version} "
            f"to {target_version}"
        )


class MigrationStepFailedError(MigrationError):
    """迁移链中某一步失败，整体升级中止。"""

    def __init__(self, version: int, cause: BaseException) -> None:
        self.version = version
        self.cause = cause
        super().__init__(
            f"Migration to version {version} failed: "
            f"{type(cause).__name__}: {cause}"
        )
