# /mysql_helper/helper.py

import json
import logging

import mysql.connector
from mysql.connector import errors

from . import dates, statements
from .connection import DatabaseHelperError, connect, load_options, load_settings
from .statements import quote_identifier

logger = logging.getLogger(__name__)

ERROR_LOG_TABLE = 'error_log'

# Failures of an otherwise valid statement. They are recorded and reported
# through the return value; every other driver error propagates.
EXECUTION_ERRORS = (errors.IntegrityError, errors.DataError)


def serialize_params(params):
    return json.dumps(params or {}, default=str, sort_keys=True)


class DatabaseHelper:
    """
    One connection plus the statement builders that run through it.

    Field maps passed to insert/update/insert_or_update may hold SqlLiteral
    values (statements.NOW, statements.NULL) which are written into the SQL
    as-is. While ``string_sentinels`` is on, the plain strings 'NOW()' and
    'NULL' are treated the same way.
    """

    def __init__(self, connection=None, log_queries=False, log_errors=False, string_sentinels=True):
        self.connection = connection
        self.log_queries = log_queries
        self.log_errors = log_errors
        self.string_sentinels = string_sentinels
        self._log = []
        self._num_queries = 0
        self._recording_error = False

    # --- CONNECTION ---
    def connect(self, settings):
        """Opens the connection described by ConnectionSettings and keeps it."""
        self.connection = connect(settings)
        return self.connection

    def close(self):
        if self.connection is not None:
            try:
                self.connection.close()
            finally:
                self.connection = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __getstate__(self):
        # A live connection cannot be serialized; call connect() after loading.
        state = self.__dict__.copy()
        state['connection'] = None
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)

    # --- CORE QUERIES ---
    def query(self, sql, params=None):
        """
        Executes one statement written with :name placeholders.

        Returns the cursor, or None when the statement failed with a
        constraint or data error (the failure goes to record_error).
        """
        if self.connection is None:
            raise DatabaseHelperError("Not connected. Call connect() first.")

        params = statements.normalize_params(params)
        cur = self.connection.cursor(dictionary=True, buffered=True)
        failure = None
        try:
            if params:
                cur.execute(statements.to_driver_sql(sql), params)
            else:
                cur.execute(sql)
        except EXECUTION_ERRORS as err:
            failure = err
        except Exception:
            cur.close()
            raise

        self._num_queries += 1
        if self.log_queries:
            self.log_append(sql)
        logger.debug("SQL: %s -- %s", sql, params)

        if failure is not None:
            cur.close()
            message = getattr(failure, 'msg', None) or str(failure)
            logger.warning("Query failed: %s -- %s", message, sql)
            self.record_error(sql, params, message)
            return None
        return cur

    def _execute(self, sql, params):
        cur = self.query(sql, params)
        if cur is None:
            return False
        cur.close()
        return True

    def select(self, sql, params=None):
        """Returns every row as a dict."""
        cur = self.query(sql, params)
        if cur is None:
            return []
        try:
            return cur.fetchall()
        finally:
            cur.close()

    def select_single(self, sql, params=None):
        """Returns the first row as a dict, or None. Adds LIMIT 1 when the query lacks it."""
        cur = self.query(statements.ensure_limit_one(sql), params)
        if cur is None:
            return None
        try:
            return cur.fetchone()
        finally:
            cur.close()

    def insert(self, table, fields, ignore=False):
        """Inserts one row. Returns the new auto-increment id, or False on failure."""
        return self._insert(table, fields, ignore, self.string_sentinels)

    def _insert(self, table, fields, ignore, string_sentinels):
        if not fields:
            return False
        clause, params = statements.build_assignments(fields, string_sentinels=string_sentinels)
        sql = "INSERT "
        if ignore:
            sql += "IGNORE "
        sql += f"INTO {quote_identifier(table)} SET {clause}"
        cur = self.query(sql, params)
        if cur is None:
            return False
        try:
            return cur.lastrowid
        finally:
            cur.close()

    def update(self, table, fields, where, where_params=None):
        """
        Updates the rows matching ``where``. An update without a where clause
        is refused.

        ``where`` is either a clause using :name placeholders (bound from
        ``where_params``) or a condition dict understood by
        statements.build_where. Either way its placeholders are prefixed with
        __where__ so they cannot clash with the SET columns.
        """
        if not where or not fields:
            return False
        clause, params = statements.build_assignments(fields, string_sentinels=self.string_sentinels)
        where_clause, where_bindings = statements.resolve_where(where, where_params)
        params.update(where_bindings)
        sql = f"UPDATE {quote_identifier(table)} SET {clause} WHERE {where_clause}"
        return self._execute(sql, params)

    def insert_or_update(self, table, insert_fields, update_fields):
        """INSERT ... ON DUPLICATE KEY UPDATE. Both field maps are required."""
        if not insert_fields or not update_fields:
            return False
        insert_clause, params = statements.build_assignments(
            insert_fields, string_sentinels=self.string_sentinels)
        update_clause, params = statements.build_assignments(
            update_fields, params, string_sentinels=self.string_sentinels)
        sql = (f"INSERT INTO {quote_identifier(table)} SET {insert_clause}"
               f" ON DUPLICATE KEY UPDATE {update_clause}")
        return self._execute(sql, params)

    def delete(self, table, where=None, where_params=None):
        """
        Deletes the rows matching ``where``.

        Unlike update(), the where clause is optional: without one every row
        of the table is deleted. An empty condition dict is not the same as
        leaving the clause out and is refused.
        """
        if isinstance(where, dict) and not where:
            return False
        sql = f"DELETE FROM {quote_identifier(table)}"
        params = {}
        if not where:
            logger.warning("Deleting every row of %s (no where clause).", table)
        elif isinstance(where, dict):
            where_clause, params = statements.build_where(where)
            sql += f" WHERE {where_clause}"
        else:
            sql += f" WHERE {where}"
            params = statements.normalize_params(where_params)
        return self._execute(sql, params)

    # --- UTILITIES ---
    def quote(self, value):
        """
        Escapes a value for embedding between quotes in hand-written SQL, e.g.
        LIKE '%...%'. Only for places a bound parameter cannot reach.
        """
        if self.connection is None:
            raise DatabaseHelperError("Not connected. Call connect() first.")
        if isinstance(value, (bytes, bytearray)):
            value = value.decode(self.connection.charset or 'utf-8')
        elif not isinstance(value, str):
            value = str(value)
        if 'NO_BACKSLASH_ESCAPES' in (getattr(self.connection, 'sql_mode', None) or ''):
            # Backslashes are literal in this mode; only quotes are doubled.
            return value.replace("'", "''")
        escaped = self.connection.converter.escape(value)
        if isinstance(escaped, (bytes, bytearray)):
            return escaped.decode(self.connection.charset or 'utf-8')
        return escaped

    def input_date_to_system_date(self, value):
        return dates.input_date_to_system_date(value)

    def system_date_to_input_date(self, value, default_today=False):
        return dates.system_date_to_input_date(value, default_today)

    # --- LOGGING ---
    def log_append(self, line):
        self._log.append(line)

    def log_fetch(self):
        return list(self._log)

    def log_reset(self):
        self._log = []

    def num_queries(self):
        return self._num_queries

    def record_error(self, sql, params, message):
        """Writes a failed statement to the error_log table when log_errors is on."""
        if not self.log_errors:
            return
        if self._recording_error:
            # The error_log insert itself failed; don't record that again.
            logger.error("Could not record failed query in %s: %s", ERROR_LOG_TABLE, message)
            return
        self._recording_error = True
        try:
            self._insert(ERROR_LOG_TABLE, {
                'thedate': statements.NOW,
                'query': sql,
                'vars': serialize_params(params),
                'message': message,
            }, ignore=False, string_sentinels=False)
        except mysql.connector.Error as err:
            logger.error("Could not write to %s: %s", ERROR_LOG_TABLE, err)
        finally:
            self._recording_error = False


# --- PROCESS-WIDE DEFAULT ---
_default = None


def init_default(settings=None, config_path=None, **options):
    """
    Creates and connects the shared helper if it doesn't exist yet.

    Without ``settings`` the [database] section of config.ini is used, along
    with its log_queries/log_errors flags.
    """
    global _default
    if _default is None:
        if settings is None:
            settings = load_settings(config_path)
            options = {**load_options(config_path), **options}
        helper = DatabaseHelper(**options)
        helper.connect(settings)
        _default = helper
    return _default


def get_default():
    if _default is None:
        raise DatabaseHelperError("No default database helper. Call init_default() first.")
    return _default


def set_default(helper):
    """Replaces the shared helper, e.g. with one restored from a saved session."""
    global _default
    _default = helper


def close_default():
    global _default
    if _default is not None:
        try:
            _default.close()
        finally:
            _default = None
