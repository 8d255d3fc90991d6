from .host_rules import HostCredentials, HostRule, HostRules, load_host_rules
from .storage import MemoryCache, PackageCache, SqliteCache, init_database

__all__ = [
    "HostCredentials",
    "HostRule",
    "HostRules",
    "load_host_rules",
    "MemoryCache",
    "PackageCache",
    "SqliteCache",
    "init_database",
]
