"""JSON 序列化器，在 VersionedState 与存储中的原始字符串之间转换。

存储格式（顶层 JSON 对象）:
    {
        "_persist": {"version": 8, "rehydrated": true},
        "settings": {...},
        "wallet": {...},
        "wallets": [...]
    }

类型转换规则:
| Python 类型 | JSON 表示                               | 反序列化还原           |
|------------|----------------------------------------|-----------------------|
| datetime   | {"__datetime__": "ISO 8601 字符串"}      | datetime.fromisoformat |
| date       | {"__date__": "ISO 8601 日期字符串"}       | date.fromisoformat     |
| set        | {"__set__": true, "values": [...]}      | set(values)            |

白名单 / 黑名单只作用于顶层字段，名单外的字段不参与持久化。
"""

import json
from datetime import date, datetime
from typing import Any, Dict, Iterable, Mapping, Optional

from src.state.infrastructure.persistence.exceptions import CorruptionError
from src.state.infrastructure.persistence.versioned_state import (
    DEFAULT_FLOOR_VERSION,
    VersionedState,
    validate_version,
)

PERSIST_KEY = "_persist"


class _CustomEncoder(json.JSONEncoder):
    """自定义 JSON 编码器，处理 datetime、date、set。"""

    def default(self, o: Any) -> Any:
        if isinstance(o, datetime):
            return {"__datetime__": o.isoformat()}

        if isinstance(o, date):
            return {"__date__": o.isoformat()}

        if isinstance(o, (set, frozenset)):
            return {"__set__": True, "values": sorted(o, key=repr)}

        return super().default(o)


def _object_hook(obj: Dict[str, Any]) -> Any:
    """JSON 反序列化 object_hook，还原特殊类型标记。"""

    if "__datetime__" in obj:
        return datetime.fromisoformat(obj["__datetime__"])

    if "__date__" in obj:
        return date.fromisoformat(obj["__date__"])

    if obj.get("__set__") is True and "values" in obj:
        return set(obj["values"])

    return obj


class JsonSerializer:
    """VersionedState ↔ JSON 字符串"""

    def __init__(
        self,
        whitelist: Optional[Iterable[str]] = None,
        blacklist: Iterable[str] = (),
        floor_version: int = DEFAULT_FLOOR_VERSION,
        key: str = "state",
    ) -> None:
        self._whitelist = frozenset(whitelist) if whitelist is not None else None
        self._blacklist = frozenset(blacklist)
        self._floor_version = validate_version(floor_version, "floor_version")
        self._key = key

    @property
    def floor_version(self) -> int:
        return self._floor_version

    def filter_fields(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """按白名单 / 黑名单筛选顶层字段。"""
        return {
            name: value
            for name, value in data.items()
            if name != PERSIST_KEY
            and (self._whitelist is None or name in self._whitelist)
            and name not in self._blacklist
        }

    def serialize(self, state: VersionedState) -> str:
        """序列化为 JSON 字符串。

        - 注入 _persist.version
        - 仅写出参与持久化的顶层字段
        - 按键排序，相同状态始终产生相同字符串
        """
        payload = self.filter_fields(state.data)
        payload[PERSIST_KEY] = {"version": state.version, "rehydrated": True}
        return json.dumps(
            payload, cls=_CustomEncoder, ensure_ascii=False, sort_keys=True
        )

    def deserialize(self, raw: str) -> VersionedState:
        """从 JSON 字符串反序列化。

        - 无 _persist 或无 version → 视为 floor_version（首次升级的旧数据）
        - JSON 非法、顶层不是对象、版本号非法 → CorruptionError
        """
        try:
            data = json.loads(raw, object_hook=_object_hook)
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            raise CorruptionError(self._key, e) from e

        if not isinstance(data, dict):
            raise CorruptionError(
                self._key,
                ValueError(f"expected a JSON object, got {type(data).__name__}"),
            )

        meta = data.get(PERSIST_KEY)
        version = meta.get("version") if isinstance(meta, dict) else None
        try:
            return VersionedState.from_mapping(
                self.filter_fields(data),
                version=version,
                floor_version=self._floor_version,
            )
        except ValueError as e:
            raise CorruptionError(self._key, e) from e
