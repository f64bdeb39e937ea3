"""
config_loader.py - 配置加载器

支持:
1. TOML 配置文件 (持久化配置)
2. YAML 配置文件 (旧版配置，向后兼容)
3. 环境变量覆盖 (.env)
4. 配置验证
"""
import os
import sys
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv

from src.state.domain.migrations.wallet_migrations import (
    CURRENT_VERSION,
    PERSIST_WHITELIST,
)
from src.state.infrastructure.persistence.exceptions import PersistConfigError

# Python 3.11+ 内置 tomllib，之前版本使用 tomli
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

# 从 src/main/config/config_loader.py 到项目根目录需要 4 级 parent
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent.parent
DEFAULT_CONFIG_PATH = "config/persist.toml"

SUPPORTED_BACKENDS = ("file", "sqlite")


@dataclass(frozen=True)
class PersistConfig:
    """持久化与迁移配置"""

    key: str = "Sqrl-config"
    version: int = CURRENT_VERSION
    whitelist: Optional[Tuple[str, ...]] = PERSIST_WHITELIST
    blacklist: Tuple[str, ...] = ()
    floor_version: int = 0
    backend: str = "file"
    storage_dir: str = "data"
    throttle_seconds: float = 1.0
    debug: bool = False
    reset_on_failure: bool = False
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def storage_path(self) -> Path:
        path = Path(self.storage_dir).expanduser()
        if not path.is_absolute():
            path = PROJECT_ROOT / path
        return path


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class ConfigLoader:
    """
    配置加载器

    - 持久化配置: 从 TOML 文件加载（兼容旧版 YAML）
    - 部署相关路径/开关: 从环境变量加载 (.env)
    """

    @staticmethod
    def load_toml(path: str) -> Dict[str, Any]:
        """加载 TOML 配置文件"""
        with open(path, "rb") as f:
            return tomllib.load(f)

    @staticmethod
    def load_yaml(path: str) -> Dict[str, Any]:
        """加载 YAML 配置文件（已弃用，保留用于向后兼容）"""
        import yaml
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    @staticmethod
    def load_persist_config(
        path: Optional[str] = None, use_env: bool = True
    ) -> PersistConfig:
        """
        加载持久化配置

        读取顺序: 内置默认值 → 配置文件 [persist] 段 → 环境变量

        Args:
            path: 配置文件路径，相对路径按项目根目录解析；文件不存在时使用默认值
            use_env: 是否应用环境变量覆盖

        Returns:
            校验通过的 PersistConfig
        """
        path = path or DEFAULT_CONFIG_PATH
        if not os.path.isabs(path):
            path = str(PROJECT_ROOT / path)

        raw: Dict[str, Any] = {}
        if os.path.exists(path):
            if path.endswith(".toml"):
                raw = ConfigLoader.load_toml(path)
            else:
                raw = ConfigLoader.load_yaml(path)

        config = ConfigLoader.build_persist_config(raw.get("persist", raw))
        if use_env:
            config = ConfigLoader.apply_env_overrides(config)

        ConfigLoader.validate_persist_config(config)
        return config

    @staticmethod
    def build_persist_config(section: Dict[str, Any]) -> PersistConfig:
        """从配置字典构建 PersistConfig，缺失字段使用默认值，未知字段放入 extra"""
        if not isinstance(section, dict):
            raise PersistConfigError(f"persist 配置段必须是表，实际为 {type(section).__name__}")

        known = {f.name for f in fields(PersistConfig)} - {"extra"}
        values = {k: v for k, v in section.items() if k in known}
        extra = {k: v for k, v in section.items() if k not in known}

        for name in ("whitelist", "blacklist"):
            if values.get(name) is not None:
                values[name] = tuple(values[name])

        return PersistConfig(**values, extra=extra)

    @staticmethod
    def apply_env_overrides(config: PersistConfig) -> PersistConfig:
        """
        应用环境变量覆盖

        支持:
            SQRL_STATE_DIR, SQRL_STATE_BACKEND,
            SQRL_STATE_DEBUG, SQRL_STATE_RESET_ON_FAILURE
        """
        env_path = PROJECT_ROOT / ".env"
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)
        else:
            load_dotenv()

        overrides: Dict[str, Any] = {}
        if os.getenv("SQRL_STATE_DIR"):
            overrides["storage_dir"] = os.getenv("SQRL_STATE_DIR")
        if os.getenv("SQRL_STATE_BACKEND"):
            overrides["backend"] = os.getenv("SQRL_STATE_BACKEND").strip().lower()
        if os.getenv("SQRL_STATE_DEBUG"):
            overrides["debug"] = _parse_bool(os.getenv("SQRL_STATE_DEBUG"))
        if os.getenv("SQRL_STATE_RESET_ON_FAILURE"):
            overrides["reset_on_failure"] = _parse_bool(
                os.getenv("SQRL_STATE_RESET_ON_FAILURE")
            )

        return replace(config, **overrides) if overrides else config

    @staticmethod
    def validate_persist_config(config: PersistConfig) -> bool:
        """
        验证持久化配置

        Args:
            config: 持久化配置

        Returns:
            True 如果配置有效
        """
        if not config.key:
            raise PersistConfigError("持久化 key 不能为空")

        for name in ("version", "floor_version"):
            value = getattr(config, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise PersistConfigError(f"{name} 必须是非负整数: {value!r}")

        if config.floor_version > config.version:
            raise PersistConfigError(
                f"floor_version ({config.floor_version}) 不能大于 version ({config.version})"
            )

        if config.backend not in SUPPORTED_BACKENDS:
            raise PersistConfigError(
                f"不支持的存储后端: {config.backend} (可选: {', '.join(SUPPORTED_BACKENDS)})"
            )

        if config.throttle_seconds < 0:
            raise PersistConfigError(f"throttle_seconds 不能为负数: {config.throttle_seconds}")

        if config.whitelist is not None and not config.whitelist:
            raise PersistConfigError("whitelist 不能为空列表")

        return True
