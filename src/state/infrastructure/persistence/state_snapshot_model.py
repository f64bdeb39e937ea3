"""状态快照表模型（peewee）。

数据库在运行时绑定（StateSnapshotModel._meta.database = db），测试中可绑定内存 SQLite。
"""

from datetime import datetime

from peewee import (
    AutoField,
    CharField,
    DateTimeField,
    IntegerField,
    Model,
    TextField,
)


class StateSnapshotModel(Model):
    """state_snapshot 表: 每次保存追加一行，按 id 取最新"""

    id = AutoField()
    state_key = CharField(max_length=128, index=True)
    snapshot_json = TextField()
    schema_version = IntegerField(null=True)
    compressed = IntegerField(default=0)
    saved_at = DateTimeField(default=datetime.now, index=True)

    class Meta:
        table_name = "state_snapshot"
