"""节流的状态自动保存服务。

状态频繁变化时按最小间隔写入存储，而不是每次变化都写。

设计决策:
- maybe_save 接受 Callable 而非直接接受状态，仅在需要保存时才取快照
- 使用 time.monotonic() 计时，不受系统时钟调整影响
- 使用摘要检测状态变化，未变化时跳过写入
- 写入在单线程池中执行，保证多次写入按提交顺序落盘
- 上一次写入未完成时跳过本次请求
- 写入失败只记录日志，不影响调用方
"""

import hashlib
import time
from concurrent.futures import Future, ThreadPoolExecutor
from logging import Logger, getLogger
from typing import Callable, Optional

from src.state.infrastructure.persistence.json_serializer import JsonSerializer
from src.state.infrastructure.persistence.storage_provider import StorageProvider
from src.state.infrastructure.persistence.versioned_state import VersionedState

SnapshotFn = Callable[[], VersionedState]


class AutoSaveService:
    """节流自动保存服务"""

    def __init__(
        self,
        storage: StorageProvider,
        serializer: JsonSerializer,
        interval_seconds: float = 1.0,
        logger: Optional[Logger] = None,
    ) -> None:
        self._storage = storage
        self._serializer = serializer
        self._interval_seconds = interval_seconds
        self._logger = logger or getLogger(__name__)
        self._last_save_time: Optional[float] = None
        self._last_digest: Optional[str] = None
        self._executor = ThreadPoolExecutor(max_workers=1)
        self._pending_future: Optional[Future] = None

    def maybe_save(self, snapshot_fn: SnapshotFn) -> bool:
        """距上次保存超过间隔且状态有变化时提交异步写入。返回是否提交了写入。"""
        now = time.monotonic()
        if (
            self._last_save_time is not None
            and now - self._last_save_time < self._interval_seconds
        ):
            return False

        return self._do_save(snapshot_fn)

    def force_save(self, snapshot_fn: SnapshotFn) -> None:
        """等待当前异步写入完成后同步保存，忽略摘要比较（用于退出前）。"""
        self._wait_pending()
        try:
            raw = self._serializer.serialize(snapshot_fn())
            self._storage.save(raw)
            self._last_digest = self._compute_digest(raw)
            self._last_save_time = time.monotonic()
            self._logger.info("强制保存完成")
        except Exception as e:
            self._logger.error(f"强制保存失败: {e}", exc_info=True)

    def shutdown(self) -> None:
        """等待所有后台写入完成后关闭线程池。"""
        self._executor.shutdown(wait=True)
        self._logger.debug("AutoSaveService 已关闭")

    def _do_save(self, snapshot_fn: SnapshotFn) -> bool:
        try:
            raw = self._serializer.serialize(snapshot_fn())
        except Exception as e:
            self._logger.error(f"自动保存序列化失败: {e}", exc_info=True)
            return False

        digest = self._compute_digest(raw)
        if digest == self._last_digest:
            self._logger.debug(f"状态未变化 (digest={digest[:8]}...)，跳过保存")
            self._last_save_time = time.monotonic()
            return False

        if self._pending_future is not None and not self._pending_future.done():
            self._logger.debug("上一次写入尚未完成，跳过本次")
            return False

        self._last_digest = digest
        self._last_save_time = time.monotonic()
        self._pending_future = self._executor.submit(self._save_in_background, raw)
        self._logger.debug(f"已提交异步保存 (digest={digest[:8]}...)")
        return True

    def _wait_pending(self) -> None:
        if self._pending_future is None or self._pending_future.done():
            return
        self._logger.debug("等待当前异步保存完成")
        try:
            self._pending_future.result(timeout=30)
        except Exception as e:
            self._logger.error(f"等待异步保存超时或失败: {e}", exc_info=True)

    def _save_in_background(self, raw: str) -> None:
        try:
            self._storage.save(raw)
            self._logger.debug("异步保存完成")
        except Exception as e:
            # 下次调用时允许重新写入同一状态
            self._last_digest = None
            self._logger.error(f"异步保存失败: {e}", exc_info=True)

    @staticmethod
    def _compute_digest(raw: str) -> str:
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()
