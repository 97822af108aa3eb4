# /mysql_helper/connection.py

import configparser
import logging
import os
import sys

import mysql.connector

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3306
DEFAULT_CHARSET = 'utf8'


class DatabaseHelperError(Exception):
    """Base class for errors raised by the helper itself."""


class ConfigurationError(DatabaseHelperError):
    """Connection settings are missing or inconsistent."""


class ConnectionFailedError(DatabaseHelperError):
    """The driver could not open a connection with the given settings."""


def get_base_path():
    """ Get the correct base path whether running as a script or a frozen exe."""
    if getattr(sys, 'frozen', False):
        return os.path.dirname(sys.executable)
    else:
        # For a script, we need to go up one level from /mysql_helper
        return os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class ConnectionSettings:
    """Everything needed to open one connection.

    Either ``host`` (with an optional ``port``) or ``socket`` identifies the
    server, never both.
    """

    def __init__(self, username=None, password=None, database=None, host=None,
                 port=None, socket=None, charset=None, collation=None):
        self.host = host or None
        try:
            self.port = int(port) if port else DEFAULT_PORT
        except (TypeError, ValueError):
            raise ConfigurationError(f"Invalid port: {port!r}") from None
        self.socket = socket or None
        self.username = username
        self.password = password
        self.database = database
        self.charset = charset or DEFAULT_CHARSET
        self.collation = collation or None

    @classmethod
    def from_dict(cls, values):
        """Builds validated settings from a plain mapping (``user`` is accepted for ``username``)."""
        values = dict(values)
        if 'username' not in values and 'user' in values:
            values['username'] = values.pop('user')
        known = ('username', 'password', 'database', 'host', 'port', 'socket', 'charset', 'collation')
        settings = cls(**{k: values.get(k) for k in known})
        settings.validate()
        return settings

    def validate(self):
        if self.host and self.socket:
            raise ConfigurationError("Supply either a host or a socket, not both.")
        if not self.host and not self.socket:
            raise ConfigurationError("A host or a socket is required.")
        for name in ('username', 'database'):
            if not getattr(self, name):
                raise ConfigurationError(f"'{name}' is required.")
        if self.password is None:
            raise ConfigurationError("'password' is required.")

    def describe(self):
        if self.socket:
            return f"unix:{self.socket}"
        return f"{self.host}:{self.port}"

    def connect_args(self):
        """Keyword arguments for ``mysql.connector.connect``."""
        args = dict(
            user=self.username,
            password=self.password,
            database=self.database,
            charset=self.charset,
            use_pure=True,
            autocommit=True,
        )
        if self.socket:
            args['unix_socket'] = self.socket
        else:
            args['host'] = self.host
            args['port'] = self.port
        if self.collation:
            args['collation'] = self.collation
        return args

    def __repr__(self):
        return f"ConnectionSettings({self.username}@{self.describe()}/{self.database})"


def load_config(path=None):
    """Reads config.ini (next to the project by default)."""
    config_path = path or os.path.join(get_base_path(), 'config.ini')
    if not os.path.exists(config_path):
        raise ConfigurationError(f"Configuration file not found: {config_path}")
    # Passwords may contain '%', so values are read verbatim.
    config = configparser.ConfigParser(interpolation=None)
    config.read(config_path, encoding='utf-8')
    return config


def load_settings(path=None, section='database'):
    """Returns the ConnectionSettings held in a section of config.ini."""
    config = load_config(path)
    if not config.has_section(section):
        raise ConfigurationError(f"Section [{section}] missing from configuration.")
    return ConnectionSettings.from_dict(config.items(section))


def load_options(path=None, section='database'):
    """Returns the helper flags (log_queries, log_errors) from config.ini."""
    config = load_config(path)
    if not config.has_section(section):
        raise ConfigurationError(f"Section [{section}] missing from configuration.")
    return dict(
        log_queries=config.getboolean(section, 'log_queries', fallback=False),
        log_errors=config.getboolean(section, 'log_errors', fallback=False),
    )


def connect(settings):
    """Opens a connection, raising ConnectionFailedError when the server refuses it."""
    settings.validate()
    try:
        conn = mysql.connector.connect(**settings.connect_args())
    except mysql.connector.Error as err:
        logger.error("Cannot connect to %s: %s", settings.describe(), err)
        raise ConnectionFailedError(f"Cannot connect to {settings.describe()}: {err}") from err
    logger.info("Connected to %s (database %s).", settings.describe(), settings.database)
    return conn
