"""迁移执行器

把持久化状态从其版本依次升级到目标版本:
- 目标版本 < 当前版本 → DowngradeNotSupportedError，不截断、不跳过
- 目标版本 == 当前版本 → 原样返回输入（幂等）
- 否则按版本升序执行 (当前版本, 目标版本] 区间内的所有迁移，
  上一步的输出作为下一步的输入
- 最终版本号强制为目标版本，即使目标版本本身没有注册迁移
- 任一步失败 → MigrationStepFailedError，调用方的输入状态不受影响

执行器本身无状态，仅持有只读注册表的引用。
"""

import copy
from dataclasses import dataclass
from logging import Logger, getLogger
from typing import Any, Dict, Mapping, Optional, Tuple

from src.state.infrastructure.persistence.exceptions import (
    DowngradeNotSupportedError,
    MigrationStepFailedError,
)
from src.state.infrastructure.persistence.migration_registry import (
    MigrationRegistry,
    MigrationStep,
)
from src.state.infrastructure.persistence.versioned_state import (
    VersionedState,
    validate_version,
)


@dataclass(frozen=True)
class MigrationPlan:
    """一次升级需要执行的有序迁移步骤，用后即弃，不持久化。"""

    from_version: int
    target_version: int
    steps: Tuple[MigrationStep, ...] = ()

    @property
    def versions(self) -> Tuple[int, ...]:
        return tuple(step.version for step in self.steps)

    @property
    def is_empty(self) -> bool:
        return not self.steps

    def __len__(self) -> int:
        return len(self.steps)


class MigrationRunner:
    """迁移执行器"""

    def __init__(
        self, registry: MigrationRegistry, logger: Optional[Logger] = None
    ) -> None:
        self._registry = registry
        self._logger = logger or getLogger(__name__)

    @property
    def registry(self) -> MigrationRegistry:
        return self._registry

    def plan(self, from_version: int, target_version: int) -> MigrationPlan:
        """计算 (from_version, target_version] 区间内的迁移步骤。

        Raises:
            DowngradeNotSupportedError: target_version < from_version
        """
        validate_version(from_version, "from_version")
        validate_version(target_version, "target_version")
        if target_version < from_version:
            raise DowngradeNotSupportedError(from_version, target_version)

        steps = []
        for step in self._registry.steps_after(from_version):
            if step.version > target_version:
                break
            steps.append(step)
        return MigrationPlan(
            from_version=from_version,
            target_version=target_version,
            steps=tuple(steps),
        )

    def upgrade(
        self, state: VersionedState, target_version: int
    ) -> VersionedState:
        """把 state 升级到 target_version。

        Args:
            state: 持久化加载的状态快照（调用方持有，不会被修改）
            target_version: 当前代码理解的 schema 版本

        Returns:
            版本号为 target_version 的新状态；版本相同时返回 state 本身

        Raises:
            DowngradeNotSupportedError: state.version > target_version
            MigrationStepFailedError: 某个迁移函数抛出异常或返回非映射值
        """
        plan = self.plan(state.version, target_version)
        if target_version == state.version:
            self._logger.debug(f"状态已是版本 {target_version}，无需迁移")
            return state

        if plan.is_empty:
            self._logger.info(
                f"版本 {state.version} → {target_version} 之间无迁移步骤，仅更新版本号"
            )
        else:
            self._logger.info(
                f"开始迁移状态: {state.version} → {target_version}, "
                f"步骤 {list(plan.versions)}"
            )

        # 深拷贝一次，保证迁移函数无论如何都触及不到调用方的对象
        data: Dict[str, Any] = copy.deepcopy(dict(state.data))
        current = state.with_data(data)
        for step in plan.steps:
            current = self._apply_step(step, current)

        result = current.with_version(target_version)
        self._logger.info(f"状态迁移完成，当前版本 {result.version}")
        return result

    def _apply_step(
        self, step: MigrationStep, current: VersionedState
    ) -> VersionedState:
        try:
            output = step.apply(dict(current.data))
            if not isinstance(output, Mapping):
                raise TypeError(
                    f"migration returned {type(output).__name__}, expected a mapping"
                )
            migrated = VersionedState(data=output, version=step.version)
        except Exception as e:
            self._logger.error(
                f"迁移到版本 {step.version} 失败: {e}", exc_info=True
            )
            raise MigrationStepFailedError(step.version, e) from e

        self._logger.debug(
            f"已执行迁移 {current.version} → {step.version}: {step.description}"
        )
        return migrated
