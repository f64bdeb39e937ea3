"""Schema 版本迁移注册表

每个迁移函数以其目标版本号为键注册，负责把上一个 schema 的状态升级为该版本的状态。
版本号无需连续，但遍历时始终按版本号升序。
注册表在启动时由固定迁移表构建，冻结后不可修改。
"""

import bisect
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from src.state.infrastructure.persistence.exceptions import (
    DuplicateVersionError,
    RegistryFrozenError,
)

MigrationFn = Callable[[Dict[str, Any]], Mapping[str, Any]]


@dataclass(frozen=True)
class MigrationStep:
    """单个迁移步骤: 升级到 version 的纯函数"""

    version: int
    transform: MigrationFn
    description: str = ""

    def apply(self, data: Dict[str, Any]) -> Mapping[str, Any]:
        return self.transform(data)


def _describe(fn: MigrationFn) -> str:
    doc = getattr(fn, "__doc__", None) or ""
    for line in doc.strip().splitlines():
        if line.strip():
            return line.strip()
    return getattr(fn, "__name__", repr(fn))


class MigrationRegistry:
    """Schema 版本迁移注册表"""

    def __init__(self) -> None:
        self._steps: Dict[int, MigrationStep] = {}
        self._versions: List[int] = []
        self._frozen = False

    @classmethod
    def from_table(
        cls, table: Iterable[Tuple[int, MigrationFn]]
    ) -> "MigrationRegistry":
        """从 (version, transform) 序列构建并冻结注册表。

        也接受 {version: transform} 形式的字典。
        重复版本号会立即抛出 DuplicateVersionError。
        """
        registry = cls()
        items = table.items() if isinstance(table, Mapping) else table
        for version, fn in items:
            registry.register(version, fn)
        registry.freeze()
        return registry

    def register(
        self, version: int, fn: MigrationFn, description: Optional[str] = None
    ) -> MigrationStep:
        """注册升级到 version 的迁移函数。

        Args:
            version: 目标版本号（非负整数）
            fn: 迁移函数，接受上一版本数据字典，返回新版本数据字典
            description: 迁移说明，缺省取函数 docstring 首行

        Raises:
            RegistryFrozenError: 注册表已冻结
            DuplicateVersionError: 该版本的迁移函数已注册
            ValueError: 版本号不是非负整数
            TypeError: fn 不可调用
        """
        if self._frozen:
            raise RegistryFrozenError(version)
        if isinstance(version, bool) or not isinstance(version, int) or version < 0:
            raise ValueError(
                f"Migration version must be a non-negative integer, got {version!r}"
            )
        if not callable(fn):
            raise TypeError(f"Migration for version {version} is not callable")
        if version in self._steps:
            raise DuplicateVersionError(version)

        step = MigrationStep(
            version=version,
            transform=fn,
            description=description if description is not None else _describe(fn),
        )
        self._steps[version] = step
        bisect.insort(self._versions, version)
        return step

    def freeze(self) -> "MigrationRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def versions(self) -> Tuple[int, ...]:
        return tuple(self._versions)

    @property
    def latest_version(self) -> Optional[int]:
        return self._versions[-1] if self._versions else None

    def get(self, version: int) -> Optional[MigrationStep]:
        return self._steps.get(version)

    def steps_after(self, from_version: int) -> Iterator[MigrationStep]:
        """按版本升序惰性产出所有 version > from_version 的迁移步骤。"""
        start = bisect.bisect_right(self._versions, from_version)
        for version in self._versions[start:]:
            yield self._steps[version]

    def __iter__(self) -> Iterator[MigrationStep]:
        return (self._steps[v] for v in self._versions)

    def __len__(self) -> int:
        return len(self._versions)

    def __contains__(self, version: object) -> bool:
        return version in self._steps

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"MigrationRegistry(versions={list(self._versions)}, {state})"
