from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator

from tasktracker.utils.clock import as_utc


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend, including SQLite."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = as_utc(value)
        if dialect.name == "sqlite":
            # stored as text; keep a single naive-UTC format so comparisons hold
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return as_utc(value)
