"""
Single entry point for everything database related. The specialized modules
are re-exported here so callers only need ``import mysql_helper``.
"""

from .connection import (
    ConfigurationError,
    ConnectionFailedError,
    ConnectionSettings,
    DatabaseHelperError,
    connect,
    get_base_path,
    load_options,
    load_settings,
)
from .dates import input_date_to_system_date, system_date_to_input_date
from .helper import (
    DatabaseHelper,
    close_default,
    get_default,
    init_default,
    set_default,
)
from .statements import NOW, NULL, SqlLiteral, build_where

__all__ = [
    "ConfigurationError",
    "ConnectionFailedError",
    "ConnectionSettings",
    "DatabaseHelper",
    "DatabaseHelperError",
    "NOW",
    "NULL",
    "SqlLiteral",
    "build_where",
    "close_default",
    "connect",
    "get_base_path",
    "get_default",
    "init_default",
    "input_date_to_system_date",
    "load_options",
    "load_settings",
    "set_default",
    "system_date_to_input_date",
]
