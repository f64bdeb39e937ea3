"""
Persistence Module

本地状态持久化与 schema 版本迁移。

- versioned_state: 带版本号的状态快照
- migration_registry / migration_runner: 迁移注册表与执行器
- json_serializer: 状态 ↔ 存储字符串
- file_storage / state_repository: 存储提供者（本地文件 / SQLite）
- auto_save_service: 节流自动保存
"""

from .exceptions import (
    CorruptionError,
    DowngradeNotSupportedError,
    DuplicateVersionError,
    InvalidStateError,
    MigrationError,
    MigrationStepFailedError,
    PersistConfigError,
    PersistenceError,
    RegistryFrozenError,
)
from .migration_registry import MigrationFn, MigrationRegistry, MigrationStep
from .migration_runner import MigrationPlan, MigrationRunner
from .versioned_state import DEFAULT_FLOOR_VERSION, VersionedState
