"""
cli.py - 本地状态迁移命令行工具

用法:
    sqrl-state plan --from 1 [--to 8]
    sqrl-state [--config config/persist.toml] show
    sqrl-state [--config ...] migrate [--target 8] [--dry-run]
"""
import argparse
import json
import logging
import sys
from typing import List, Optional

from src.main.bootstrap.state_setup import (
    configure_logging,
    create_serializer,
    create_storage,
    persist_state,
)
from src.main.config.config_loader import ConfigLoader
from src.state.domain.migrations.wallet_migrations import build_registry
from src.state.infrastructure.persistence.exceptions import (
    MigrationError,
    PersistenceError,
)
from src.state.infrastructure.persistence.migration_runner import MigrationRunner

logger = logging.getLogger(__name__)


def _cmd_plan(args: argparse.Namespace) -> int:
    config = ConfigLoader.load_persist_config(args.config)
    target = args.to if args.to is not None else config.version
    plan = MigrationRunner(build_registry()).plan(args.from_version, target)

    print(f"迁移计划: {plan.from_version} → {plan.target_version}")
    if plan.is_empty:
        print("  (无迁移步骤)")
    for step in plan.steps:
        print(f"  v{step.version}: {step.description}")
    return 0


def _cmd_show(args: argparse.Namespace) -> int:
    config = ConfigLoader.load_persist_config(args.config)
    raw = create_storage(config).load()
    if raw is None:
        print(f"未找到持久化状态: {config.key}")
        return 0

    state = create_serializer(config).deserialize(raw)
    print(f"key: {config.key}")
    print(f"存储版本: {state.version} (当前代码版本: {config.version})")
    print(f"字段: {', '.join(sorted(state.data)) or '(空)'}")
    return 0


def _cmd_migrate(args: argparse.Namespace) -> int:
    config = ConfigLoader.load_persist_config(args.config)
    configure_logging(config)
    target = args.target if args.target is not None else config.version

    storage = create_storage(config)
    serializer = create_serializer(config)
    raw = storage.load()
    if raw is None:
        print(f"未找到持久化状态: {config.key}，无需迁移")
        return 0

    state = serializer.deserialize(raw)
    migrated = MigrationRunner(build_registry()).upgrade(state, target)
    if migrated is state:
        print(f"状态已是版本 {target}，无需迁移")
        return 0

    if args.dry_run:
        print(f"[dry-run] {state.version} → {migrated.version}")
        print(json.dumps(dict(migrated.data), ensure_ascii=False, indent=2, default=str))
        return 0

    persist_state(migrated, storage, serializer)
    print(f"迁移完成: {state.version} → {migrated.version}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sqrl-state", description="本地状态版本迁移工具")
    parser.add_argument("--config", type=str, default=None, help="持久化配置文件路径")
    parser.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")
    sub = parser.add_subparsers(dest="command", required=True)

    plan = sub.add_parser("plan", help="显示迁移计划")
    plan.add_argument("--from", dest="from_version", type=int, required=True, help="起始版本")
    plan.add_argument("--to", type=int, default=None, help="目标版本（默认当前版本）")
    plan.set_defaults(func=_cmd_plan)

    show = sub.add_parser("show", help="显示已持久化状态的版本与字段")
    show.set_defaults(func=_cmd_show)

    migrate = sub.add_parser("migrate", help="迁移已持久化状态并写回")
    migrate.add_argument("--target", type=int, default=None, help="目标版本（默认当前版本）")
    migrate.add_argument("--dry-run", action="store_true", help="只显示结果，不写回")
    migrate.set_defaults(func=_cmd_migrate)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except MigrationError as e:
        print(f"迁移失败: {e}", file=sys.stderr)
        return 1
    except PersistenceError as e:
        print(f"持久化错误: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
