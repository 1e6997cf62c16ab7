from migrator.migrations.definition import (
    CallableOperation,
    MigrationContext,
    MigrationDefinition,
    Operation,
)
from migrator.migrations.resolver import MigrationRegistry, resolve
from migrator.migrations.history import HistoryStore
from migrator.migrations.engine import MigrationEngine, RunEntry, RunReport

__all__ = [
    "CallableOperation",
    "MigrationContext",
    "MigrationDefinition",
    "Operation",
    "MigrationRegistry",
    "resolve",
    "HistoryStore",
    "MigrationEngine",
    "RunEntry",
    "RunReport",
]
