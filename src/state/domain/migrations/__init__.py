"""
钱包应用状态的 schema 迁移表。
"""

from .wallet_migrations import (
    CURRENT_VERSION,
    PERSIST_WHITELIST,
    WALLET_MIGRATIONS,
    build_registry,
)
