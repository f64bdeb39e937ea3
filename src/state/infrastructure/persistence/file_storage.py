"""基于本地 JSON 文件的存储提供者。

每个持久化 key 对应目录下的一个 <key>.json 文件。
写入先落到同目录临时文件再 os.replace，避免进程中途退出留下半个文件。
"""

import os
import tempfile
from logging import Logger, getLogger
from pathlib import Path
from typing import Optional, Union

from src.state.infrastructure.persistence.exceptions import CorruptionError


class FileStorage:
    """本地文件存储"""

    def __init__(
        self,
        directory: Union[str, Path],
        key: str,
        logger: Optional[Logger] = None,
    ) -> None:
        if not key or os.sep in key or (os.altsep and os.altsep in key):
            raise ValueError(f"Invalid storage key: {key!r}")
        self._directory = Path(directory)
        self._key = key
        self._logger = logger or getLogger(__name__)

    @property
    def path(self) -> Path:
        return self._directory / f"{self._key}.json"

    def load(self) -> Optional[str]:
        """读取原始字符串；文件不存在时返回 None。"""
        try:
            with open(self.path, "r", encoding="utf-8", newline="") as f:
                raw = f.read()
        except FileNotFoundError:
            self._logger.info(f"未找到持久化状态文件: {self.path}")
            return None
        except UnicodeDecodeError as e:
            raise CorruptionError(self._key, e) from e

        self._logger.debug(f"已读取持久化状态: {self.path} ({len(raw)} 字符)")
        return raw

    def save(self, raw: str) -> None:
        """原子写入原始字符串。"""
        self._directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self._key}.", suffix=".tmp", dir=str(self._directory)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(raw)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        self._logger.debug(f"已写入持久化状态: {self.path}")

    def clear(self) -> bool:
        """删除状态文件，返回是否确实删除了文件。"""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        self._logger.info(f"已删除持久化状态文件: {self.path}")
        return True
