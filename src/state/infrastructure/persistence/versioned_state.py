"""带版本号的状态快照。

VersionedState 是迁移引擎的输入与输出:
- data: 顶层字段名 → 任意嵌套值（settings、wallet、wallets 等）
- version: 非负整数 schema 版本号

实例不可变；with_version / with_data 返回新实例。
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

from src.state.infrastructure.persistence.exceptions import InvalidStateError

DEFAULT_FLOOR_VERSION = 0


def validate_version(version: Any, name: str = "version") -> int:
    """校验版本号为非负整数，返回该版本号。"""
    # bool 是 int 的子类，需单独排除
    if isinstance(version, bool) or not isinstance(version, int):
        raise InvalidStateError(
            f"{name} must be a non-negative integer, got {version!r}"
        )
    if version < 0:
        raise InvalidStateError(
            f"{name} must be a non-negative integer, got {version}"
        )
    return version


def validate_data(data: Any) -> Mapping[str, Any]:
    """校验状态数据为以字符串为键的映射。"""
    if not isinstance(data, Mapping):
        raise InvalidStateError(
            f"state data must be a mapping, got {type(data).__name__}"
        )
    for key in data:
        if not isinstance(key, str):
            raise InvalidStateError(
                f"state field names must be strings, got {key!r}"
            )
    return data


@dataclass(frozen=True)
class VersionedState:
    """带 schema 版本号的状态快照"""

    data: Mapping[str, Any] = field(default_factory=dict)
    version: int = DEFAULT_FLOOR_VERSION

    def __post_init__(self) -> None:
        validate_data(self.data)
        validate_version(self.version)
        # 顶层只读视图，避免调用方绕过 with_data 修改字段
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        version: Optional[int] = None,
        floor_version: int = DEFAULT_FLOOR_VERSION,
    ) -> "VersionedState":
        """构造快照；version 缺失时使用 floor_version。"""
        validate_version(floor_version, "floor_version")
        return cls(data=data, version=floor_version if version is None else version)

    def with_version(self, version: int) -> "VersionedState":
        return VersionedState(data=self.data, version=version)

    def with_data(self, data: Mapping[str, Any]) -> "VersionedState":
        return VersionedState(data=data, version=self.version)

    def to_dict(self) -> dict:
        """返回顶层字段的普通 dict 副本（浅拷贝）。"""
        return dict(self.data)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)
