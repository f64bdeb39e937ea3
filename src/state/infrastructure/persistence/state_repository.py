"""状态仓库：基于 SQLite (peewee) 的存储提供者。

职责:
- 保存状态快照到 state_snapshot 表（INSERT 追加）
- 加载最新快照（ORDER BY id DESC LIMIT 1）
- 区分"无记录"(None) 和"记录损坏"(CorruptionError)
- 验证记录完整性（JSON 可解析且包含 _persist.version）
- 超过阈值的快照压缩存储
- 清理旧快照（始终保留最新一条）
"""

import base64
import binascii
import json
import zlib
from datetime import datetime, timedelta
from logging import Logger, getLogger
from typing import Optional

from peewee import Database

from src.state.infrastructure.persistence.exceptions import CorruptionError
from src.state.infrastructure.persistence.json_serializer import PERSIST_KEY
from src.state.infrastructure.persistence.state_snapshot_model import (
    StateSnapshotModel,
)

COMPRESSION_PREFIX = "ZLIB:"
DEFAULT_COMPRESSION_THRESHOLD = 10 * 1024  # 10KB


def _extract_version(raw: str) -> Optional[int]:
    """从原始 JSON 中读出 _persist.version，失败时返回 None。"""
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(parsed, dict):
        return None
    meta = parsed.get(PERSIST_KEY)
    version = meta.get("version") if isinstance(meta, dict) else None
    if isinstance(version, bool) or not isinstance(version, int):
        return None
    return version


class StateRepository:
    """状态仓库，基于 SQLite 存储。"""

    def __init__(
        self,
        database: Database,
        key: str,
        logger: Optional[Logger] = None,
        compression_threshold: int = DEFAULT_COMPRESSION_THRESHOLD,
    ) -> None:
        self._database = database
        self._key = key
        self._logger = logger or getLogger(__name__)
        self._compression_threshold = compression_threshold
        self._bind()
        database.create_tables([StateSnapshotModel], safe=True)

    def save(self, raw: str) -> None:
        """追加一条快照，保留历史记录。"""
        self._bind()
        stored, compressed = self._maybe_compress(raw)
        StateSnapshotModel.create(
            state_key=self._key,
            snapshot_json=stored,
            schema_version=_extract_version(raw),
            compressed=int(compressed),
            saved_at=datetime.now(),
        )
        self._logger.info(
            f"状态快照已保存: {self._key}"
            + (" (已压缩)" if compressed else "")
        )

    def load(self) -> Optional[str]:
        """加载最新快照。

        - 无记录 → 返回 None
        - 记录存在但无法解压 → 抛出 CorruptionError
        - 成功 → 返回原始 JSON 字符串
        """
        record = self._latest()
        if record is None:
            self._logger.info(f"未找到状态快照记录: {self._key}")
            return None

        try:
            raw = self._maybe_decompress(record.snapshot_json)
        except (binascii.Error, zlib.error, UnicodeDecodeError) as e:
            raise CorruptionError(self._key, e) from e

        self._logger.info(
            f"状态快照已加载: {self._key} (schema_version={record.schema_version})"
        )
        return raw

    def verify_integrity(self) -> bool:
        """验证最新记录完整性：可解压、JSON 可解析且包含 _persist.version。"""
        record = self._latest()
        if record is None:
            return False

        try:
            raw = self._maybe_decompress(record.snapshot_json)
        except (binascii.Error, zlib.error, UnicodeDecodeError):
            return False

        return _extract_version(raw) is not None

    def cleanup(self, keep_days: int = 7) -> int:
        """删除 saved_at 早于 keep_days 天前的快照，最新一条始终保留。返回删除的记录数。"""
        latest = self._latest()
        if latest is None:
            return 0

        self._bind()
        cutoff = datetime.now() - timedelta(days=keep_days)
        deleted = (
            StateSnapshotModel.delete()
            .where(
                (StateSnapshotModel.state_key == self._key)
                & (StateSnapshotModel.saved_at < cutoff)
                & (StateSnapshotModel.id != latest.id)
            )
            .execute()
        )

        self._logger.info(f"清理旧快照: {self._key}, 删除 {deleted} 条记录")
        return deleted

    def _bind(self) -> None:
        StateSnapshotModel._meta.database = self._database

    def _latest(self) -> Optional[StateSnapshotModel]:
        self._bind()
        return (
            StateSnapshotModel.select()
            .where(StateSnapshotModel.state_key == self._key)
            .order_by(StateSnapshotModel.id.desc())
            .first()
        )

    def _maybe_compress(self, raw: str) -> tuple[str, bool]:
        """超过阈值时压缩，压缩后更大则保留原始。

        Returns:
            tuple[str, bool]: (存储数据, 是否已压缩)
                - 如果压缩：返回 "ZLIB:" + base64编码的压缩数据
                - 如果未压缩：返回原始 JSON 字符串
        """
        raw_bytes = raw.encode("utf-8")

        if len(raw_bytes) <= self._compression_threshold:
            return raw, False

        compressed = zlib.compress(raw_bytes)

        # base64 后的长度才是实际存储长度
        encoded = base64.b64encode(compressed).decode("ascii")
        if len(COMPRESSION_PREFIX) + len(encoded) >= len(raw_bytes):
            return raw, False

        return COMPRESSION_PREFIX + encoded, True

    def _maybe_decompress(self, stored: str) -> str:
        """检测前缀并解压。"""
        if stored.startswith(COMPRESSION_PREFIX):
            encoded = stored[len(COMPRESSION_PREFIX):]
            compressed = base64.b64decode(encoded, validate=True)
            return zlib.decompress(compressed).decode("utf-8")

        return stored
