"""存储提供者接口。

迁移引擎不关心状态存放在哪里；宿主只需提供 load / save 两个操作。
load 返回 None 表示尚无持久化状态（首次启动），不是错误。
"""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class StorageProvider(Protocol):
    def load(self) -> Optional[str]:
        ...

    def save(self, raw: str) -> None:
        ...
