from migrator.models.migration_record import MigrationRecord, MigrationStatus

__all__ = [
    "MigrationRecord",
    "MigrationStatus",
]
