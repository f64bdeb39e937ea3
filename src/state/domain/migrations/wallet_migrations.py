"""钱包应用持久化状态的版本迁移表

每个迁移函数以其目标版本号为键，接收上一版本的完整状态，返回新版本的完整状态。
迁移函数不修改输入：需要改动的子结构先复制再改，其余顶层字段原样带过。
新增 schema 版本时，在 WALLET_MIGRATIONS 末尾追加一项并同步 CURRENT_VERSION。
"""

from typing import Any, Dict, List, Tuple

from src.state.domain.migrations.defaults import (
    BASE_TOKEN,
    IPFS_DEFAULTS,
    default_blockchains_v7,
    default_blockchains_v8,
)
from src.state.infrastructure.persistence.migration_registry import (
    MigrationFn,
    MigrationRegistry,
)

CURRENT_VERSION = 8

State = Dict[str, Any]


def _settings_of(state: State) -> Dict[str, Any]:
    """返回 settings 的浅拷贝；缺失时为空字典。"""
    return dict(state.get("settings") or {})


def migrate_to_v2(state: State) -> State:
    """创建 wallets 列表，并把 settings 中的账户与钱包模式复制到 wallet。"""
    settings = state.get("settings") or {}
    wallet = dict(state.get("wallet") or {})
    wallet["account"] = settings.get("account")
    wallet["mode"] = settings.get("walletMode")
    wallet["version"] = 2
    return {
        **state,
        "settings": dict(settings),
        "wallet": wallet,
        "wallets": [dict(wallet)],
    }


def migrate_to_v3(state: State) -> State:
    """确保 customTokens 存在且包含基础代币合约。"""
    settings = _settings_of(state)
    tokens = list(settings.get("customTokens") or [])
    if BASE_TOKEN not in tokens:
        tokens.append(BASE_TOKEN)
    settings["customTokens"] = tokens
    return {**state, "settings": settings}


def _normalize_token(token: str) -> str:
    # 只保留前两段 contract:symbol
    parts = token.split(":")
    if len(parts) == 1:
        return parts[0].lower()
    return f"{parts[0].lower()}:{parts[1].upper()}"


def migrate_to_v4(state: State) -> State:
    """规范化 customTokens: 合约名小写，代币符号大写。"""
    settings = _settings_of(state)
    tokens = settings.get("customTokens")
    if tokens:
        settings["customTokens"] = [_normalize_token(token) for token in tokens]
    return {**state, "settings": settings}


def migrate_to_v5(state: State) -> State:
    """settings 新增 recentContracts 列表。"""
    settings = _settings_of(state)
    if not settings.get("recentContracts"):
        settings["recentContracts"] = []
    return {**state, "settings": settings}


def migrate_to_v6(state: State) -> State:
    """settings 新增 contacts 与 recentProposalsScopes 列表。"""
    settings = _settings_of(state)
    if not settings.get("recentProposalsScopes"):
        settings["recentProposalsScopes"] = []
    if not settings.get("contacts"):
        settings["contacts"] = []
    return {**state, "settings": settings}


def migrate_to_v7(state: State) -> State:
    """多链支持: 配置默认链列表。"""
    settings = _settings_of(state)
    if not settings.get("blockchains"):
        settings["blockchains"] = default_blockchains_v7()
    return {**state, "settings": settings}


def migrate_to_v8(state: State) -> State:
    """重置当前链、刷新默认链列表并写入 IPFS 默认配置。"""
    settings = _settings_of(state)
    settings["blockchain"] = {}
    settings["blockchains"] = default_blockchains_v8()
    settings.update(IPFS_DEFAULTS)
    return {**state, "settings": settings}


WALLET_MIGRATIONS: List[Tuple[int, MigrationFn]] = [
    (2, migrate_to_v2),
    (3, migrate_to_v3),
    (4, migrate_to_v4),
    (5, migrate_to_v5),
    (6, migrate_to_v6),
    (7, migrate_to_v7),
    (8, migrate_to_v8),
]

PERSIST_WHITELIST = ("settings", "wallet", "wallets")


def build_registry() -> MigrationRegistry:
    """构建并冻结钱包状态迁移注册表。"""
    return MigrationRegistry.from_table(WALLET_MIGRATIONS)
