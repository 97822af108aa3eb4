# /mysql_helper/statements.py
"""
SQL assembly for the helper.

Statements are written with ``:name`` placeholders. Only the final step,
``to_driver_sql``, turns them into the ``%(name)s`` form mysql.connector
expects.
"""

import re

WHERE_PREFIX = '__where__'
UPDATE_PREFIX = '__update__'

# Quoted strings and identifiers are matched first so placeholders inside
# them are left alone.
_TOKEN_RE = re.compile(r"""
    '(?:[^'\\]|\\.|'')*'
  | "(?:[^"\\]|\\.|"")*"
  | `(?:[^`]|``)*`
  | ::
  | :[A-Za-z_][A-Za-z0-9_]*
  | %
""", re.VERBOSE)

_LIMIT_ONE_RE = re.compile(r'limit\s1', re.IGNORECASE)

OPERATORS = ('=', '!=', '<>', '<', '<=', '>', '>=', 'LIKE', 'NOT LIKE', 'IN', 'NOT IN', 'IS', 'IS NOT')


class SqlLiteral:
    """A fragment of SQL embedded verbatim instead of being bound as a parameter."""

    __slots__ = ('sql',)

    def __init__(self, sql):
        self.sql = sql

    def __eq__(self, other):
        return isinstance(other, SqlLiteral) and other.sql == self.sql

    def __hash__(self):
        return hash(('SqlLiteral', self.sql))

    def __repr__(self):
        return f"SqlLiteral({self.sql!r})"


NOW = SqlLiteral('NOW()')
NULL = SqlLiteral('NULL')

# Plain strings that are still read as keywords when string sentinels are on.
SENTINELS = {'NOW()': NOW, 'NULL': NULL}


def as_literal(value, string_sentinels=True):
    """Returns the SqlLiteral a field value stands for, or None if it must be bound."""
    if isinstance(value, SqlLiteral):
        return value
    if string_sentinels and isinstance(value, str) and value in SENTINELS:
        return SENTINELS[value]
    return None


def quote_identifier(name):
    """Backtick-quotes a column or table name (``schema.table`` is quoted per part)."""
    return '.'.join('`' + part.replace('`', '``') + '`' for part in str(name).split('.'))


def placeholder_name(column):
    # mysql.connector only recognises ASCII names in %(name)s
    name = re.sub(r'[^A-Za-z0-9_]', '_', str(column))
    if name[:1].isdigit():
        name = '_' + name
    return name


def normalize_params(params):
    """Copies a parameter map, dropping the optional leading ':' from its keys."""
    if not params:
        return {}
    return {str(k).lstrip(':'): v for k, v in dict(params).items()}


def build_assignments(fields, params=None, string_sentinels=True, collision_prefix=UPDATE_PREFIX):
    """
    Turns a field map into a ``col = :col, ...`` list.

    Bindings are added to ``params`` (a new dict when omitted). A column whose
    placeholder is already bound to a different value gets ``collision_prefix``
    in front of its name.
    Returns (clause, params).
    """
    params = {} if params is None else params
    parts = []
    for column, value in fields.items():
        literal = as_literal(value, string_sentinels)
        if literal is not None:
            parts.append(f"{quote_identifier(column)} = {literal.sql}")
            continue
        name = placeholder_name(column)
        if name in params and params[name] != value:
            name = collision_prefix + name
        parts.append(f"{quote_identifier(column)} = :{name}")
        params[name] = value
    return ', '.join(parts), params


def prefix_placeholders(clause, prefix=WHERE_PREFIX):
    """Renames every ``:name`` placeholder in a caller-written clause to ``:<prefix>name``."""
    def replace(match):
        token = match.group(0)
        if token.startswith(':') and token != '::':
            return ':' + prefix + token[1:]
        return token
    return _TOKEN_RE.sub(replace, clause)


def prefix_params(params, prefix=WHERE_PREFIX):
    return {prefix + k: v for k, v in normalize_params(params).items()}


def _condition(column, operator, value, index, prefix, params):
    op = operator.strip().upper()
    if op not in OPERATORS:
        raise ValueError(f"Unsupported operator in where condition: {operator!r}")
    target = quote_identifier(column)

    if value is None or value is NULL:
        if op in ('=', 'IS'):
            return f"{target} IS NULL"
        if op in ('!=', '<>', 'IS NOT'):
            return f"{target} IS NOT NULL"
    if isinstance(value, SqlLiteral):
        return f"{target} {op} {value.sql}"

    name = f"{prefix}{index}_{placeholder_name(column)}"
    if op in ('IN', 'NOT IN'):
        if not isinstance(value, (list, tuple, set, frozenset)):
            raise ValueError(f"{op} needs a list of values for column {column!r}")
        if not value:
            raise ValueError(f"{op} needs at least one value for column {column!r}")
        names = []
        for position, item in enumerate(value):
            params[f"{name}_{position}"] = item
            names.append(f":{name}_{position}")
        return f"{target} {op} ({', '.join(names)})"

    params[name] = value
    return f"{target} {op} :{name}"


def build_where(conditions, prefix=WHERE_PREFIX):
    """
    Builds a WHERE clause (without the keyword) from a condition dict.

        {'id': 7}                          -> `id` = :__where__0_id
        {'age': {'>=': 18, '<': 65}}       -> `age` >= ... AND `age` < ...
        {'status': {'IN': ['a', 'b']}}     -> `status` IN (..., ...)
        {'deleted_at': None}               -> `deleted_at` IS NULL

    Conditions are joined with AND. Returns (clause, params).
    """
    params = {}
    parts = []
    index = 0
    for column, spec in conditions.items():
        if isinstance(spec, dict):
            pairs = spec.items()
        else:
            pairs = [('=', spec)]
        for operator, value in pairs:
            parts.append(_condition(column, operator, value, index, prefix, params))
            index += 1
    return ' AND '.join(parts), params


def resolve_where(where, where_params=None, prefix=WHERE_PREFIX):
    """
    Accepts either a caller-written clause with its params or a condition dict
    and returns (clause, params) with every placeholder carrying ``prefix``.
    """
    if isinstance(where, dict):
        return build_where(where, prefix)
    return prefix_placeholders(where, prefix), prefix_params(where_params, prefix)


def ensure_limit_one(sql):
    """Appends LIMIT 1 unless the trimmed statement already ends with it."""
    if not _LIMIT_ONE_RE.search(sql.strip()[-7:]):
        return sql + ' LIMIT 1'
    return sql


def to_driver_sql(sql, bind=True):
    """
    Rewrites ``:name`` placeholders as ``%(name)s``.

    When parameters are bound the driver runs %-formatting over the whole
    statement, so literal ``%`` signs are doubled as well. Without
    parameters the statement is passed through untouched.
    """
    if not bind:
        return sql

    def replace(match):
        token = match.group(0)
        if token == '%':
            return '%%'
        if token == '::':
            return token
        if token.startswith(':'):
            return f"%({token[1:]})s"
        return token.replace('%', '%%')
    return _TOKEN_RE.sub(replace, sql)
