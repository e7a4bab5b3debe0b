"""Key-value table backends."""

from peopledb.storage.memory import MemoryTable
from peopledb.storage.retry import RetryPolicy
from peopledb.storage.sql import SqlTable
from peopledb.storage.table import IndexName, KeyValueTable, QueryPage

__all__ = [
    "IndexName",
    "KeyValueTable",
    "MemoryTable",
    "QueryPage",
    "RetryPolicy",
    "SqlTable",
]
