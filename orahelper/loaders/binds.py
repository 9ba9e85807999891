"""
Named bind construction for Oracle cursors.

``oracledb`` is imported lazily inside ``oracle_type_for``; building IN-only
binds never touches it, so descriptor validation and dry-run paths work
without a driver round trip.

Mapping rules for OUT / IN_OUT variables:
  - VARCHAR2  → ``oracledb.DB_TYPE_VARCHAR``
  - NUMBER    → ``oracledb.DB_TYPE_NUMBER``
  - DATE      → ``oracledb.DB_TYPE_DATE``
  - TIMESTAMP → ``oracledb.DB_TYPE_TIMESTAMP``
  - CLOB      → ``oracledb.DB_TYPE_CLOB``
  - UNKNOWN   → ``oracledb.DB_TYPE_VARCHAR`` (safe fallback)
"""

from __future__ import annotations

from typing import Any, Sequence

from orahelper.configs.exceptions import BindError
from orahelper.models.commands import Parameter, ParameterDirection
from orahelper.utils.validation import normalize_bind_name


def oracle_type_for(data_type: str) -> object:
    """
    Return the ``oracledb`` DB type constant for a given Oracle type label.

    Raises:
        BindError: If ``data_type`` is not in the type map.
    """
    import oracledb  # lazy, only needed for OUT / IN_OUT binds

    type_map: dict[str, object] = {
        "VARCHAR2":  oracledb.DB_TYPE_VARCHAR,
        "NUMBER":    oracledb.DB_TYPE_NUMBER,
        "DATE":      oracledb.DB_TYPE_DATE,
        "TIMESTAMP": oracledb.DB_TYPE_TIMESTAMP,
        "CLOB":      oracledb.DB_TYPE_CLOB,
        "UNKNOWN":   oracledb.DB_TYPE_VARCHAR,
    }

    key = data_type.upper() if isinstance(data_type, str) else data_type
    if key not in type_map:
        raise BindError(
            f"No Oracle bind type mapping for data_type {data_type!r}. "
            f"Valid types: {list(type_map)}"
        )
    return type_map[key]


def build_binds(
    cursor,
    parameters: Sequence[Parameter],
) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Build the named-bind dict for ``cursor.execute`` / ``cursor.callproc``.

    Args:
        cursor:     Open cursor (real or fake); ``cursor.var`` allocates
                    output variables.
        parameters: Descriptor parameters in declaration order.

    Returns:
        ``(binds, out_vars)`` where ``binds`` maps bind name (no colon) to a
        value or variable and ``out_vars`` holds just the OUT / IN_OUT
        variables so their values can be read back after execution.

    Raises:
        BindError: For invalid or duplicate names, an OUT / IN_OUT parameter
                   without ``db_type``, or a variable the cursor refuses.
    """
    binds: dict[str, Any] = {}
    out_vars: dict[str, Any] = {}
    seen: set[str] = set()

    for param in parameters:
        name = normalize_bind_name(param.name)
        if name.upper() in seen:
            raise BindError(f"Duplicate bind name {param.name!r}.", parameter=param.name)
        seen.add(name.upper())

        if param.direction is ParameterDirection.IN:
            binds[name] = param.value
            continue

        if not param.db_type:
            raise BindError(
                f"{param.direction.value.upper()} parameter needs a db_type.",
                parameter=param.name,
            )
        try:
            var = cursor.var(oracle_type_for(param.db_type))
            if param.direction is ParameterDirection.IN_OUT:
                var.setvalue(0, param.value)
        except BindError:
            raise
        except Exception as e:
            raise BindError(
                f"Could not allocate bind variable: {e}", parameter=param.name
            ) from e
        binds[name] = var
        out_vars[name] = var

    return binds, out_vars


def read_out_values(out_vars: dict[str, Any]) -> dict[str, Any]:
    """Return the current value of each OUT / IN_OUT variable."""
    return {name: var.getvalue() for name, var in out_vars.items()}
