"""
state_setup.py - 启动时的本地状态加载与迁移

流程: 存储读取原始字符串 → 反序列化为 VersionedState → 迁移到当前版本 → 交给应用。
本模块只读不写；迁移结果由调用方在需要时通过 persist_state 写回。
"""
import logging
from logging import Logger
from typing import Any, Mapping, Optional

from peewee import SqliteDatabase

from src.main.config.config_loader import PersistConfig
from src.state.domain.migrations.wallet_migrations import build_registry
from src.state.infrastructure.persistence.exceptions import (
    CorruptionError,
    DowngradeNotSupportedError,
    MigrationStepFailedError,
)
from src.state.infrastructure.persistence.file_storage import FileStorage
from src.state.infrastructure.persistence.json_serializer import JsonSerializer
from src.state.infrastructure.persistence.migration_registry import MigrationRegistry
from src.state.infrastructure.persistence.migration_runner import MigrationRunner
from src.state.infrastructure.persistence.state_repository import StateRepository
from src.state.infrastructure.persistence.storage_provider import StorageProvider
from src.state.infrastructure.persistence.versioned_state import VersionedState

logger = logging.getLogger(__name__)

STATE_LOGGER_NAME = "src.state"


def configure_logging(config: PersistConfig) -> None:
    """debug 开启时输出每一步迁移的调试日志。"""
    if config.debug:
        logging.getLogger(STATE_LOGGER_NAME).setLevel(logging.DEBUG)


def create_serializer(config: PersistConfig) -> JsonSerializer:
    return JsonSerializer(
        whitelist=config.whitelist,
        blacklist=config.blacklist,
        floor_version=config.floor_version,
        key=config.key,
    )


def create_storage(config: PersistConfig) -> StorageProvider:
    """按配置创建存储提供者。"""
    directory = config.storage_path
    if config.backend == "sqlite":
        directory.mkdir(parents=True, exist_ok=True)
        db = SqliteDatabase(str(directory / f"{config.key}.db"))
        return StateRepository(database=db, key=config.key)
    return FileStorage(directory=directory, key=config.key)


def setup_state(
    config: PersistConfig,
    storage: Optional[StorageProvider] = None,
    registry: Optional[MigrationRegistry] = None,
    initial_state: Optional[Mapping[str, Any]] = None,
    log: Optional[Logger] = None,
) -> VersionedState:
    """
    加载并迁移本地状态。

    Args:
        config: 持久化配置
        storage: 存储提供者，缺省按 config 创建
        registry: 迁移注册表，缺省为钱包状态迁移表
        initial_state: 无持久化状态或重置时使用的初始状态
        log: 日志记录器

    Returns:
        版本号为 config.version 的状态

    Raises:
        CorruptionError / DowngradeNotSupportedError / MigrationStepFailedError:
            config.reset_on_failure 关闭时原样抛出
    """
    log = log or logger
    configure_logging(config)
    storage = storage if storage is not None else create_storage(config)
    registry = registry if registry is not None else build_registry()
    fresh = VersionedState(data=dict(initial_state or {}), version=config.version)

    serializer = create_serializer(config)
    runner = MigrationRunner(registry)
    try:
        raw = storage.load()
        if raw is None:
            log.info(f"无持久化状态，使用初始状态 (version={config.version})")
            return fresh
        persisted = serializer.deserialize(raw)
        return runner.upgrade(persisted, config.version)
    except (CorruptionError, DowngradeNotSupportedError, MigrationStepFailedError) as e:
        if not config.reset_on_failure:
            log.error(f"本地状态加载失败: {e}")
            raise
        log.warning(f"本地状态加载失败，重置为初始状态: {e}")
        return fresh


def persist_state(
    state: VersionedState,
    storage: StorageProvider,
    serializer: JsonSerializer,
) -> str:
    """序列化并写入存储，返回写入的原始字符串。"""
    raw = serializer.serialize(state)
    storage.save(raw)
    return raw
