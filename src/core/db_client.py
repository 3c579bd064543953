"""SQLite database client wrapper with CRUD operations."""

import asyncio
import json
import logging
import re
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.config import constants, settings


logger = logging.getLogger(__name__)

FilterParam = str | int | float | bool | None


class DatabaseError(RuntimeError):
    """Raised when a database operation fails unexpectedly."""


class RecordNotFoundError(KeyError):
    """Raised when a record looked up by id does not exist."""


class DuplicateRecordError(DatabaseError):
    """Raised when an insert violates a uniqueness constraint."""


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def serialize_datetime(value: datetime) -> str:
    """Serialize a datetime as a fixed-width UTC ISO string so stored values sort lexically.

    Naive datetimes are assumed to already be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _serialize_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return serialize_datetime(value)
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def _convert_record_ids(record: dict[str, Any]) -> dict[str, Any]:
    """Convert integer ID and foreign key fields to strings for Pydantic compatibility."""
    fk_fields = {"id", "assigned_by"}

    converted = record.copy()
    for key, value in converted.items():
        # Convert if it's a known FK field, ends in _id, or is the primary id
        if isinstance(value, int) and (key in fk_fields or key.endswith("_id")):
            converted[key] = str(value)
    return converted


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _parse_value(value: str, *, is_like: bool = False) -> FilterParam:
    """Parse a string value to the appropriate Python type for SQLite."""
    if is_like:
        return value.replace("%", "\\%").replace("_", "\\_")

    if value.isdigit():
        return int(value)
    if value.replace(".", "", 1).isdigit():
        return float(value)

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    return value


def _get_sql_operator(op: str) -> str:
    """Map filter operator to SQL operator."""
    op_map = {
        "=": "=",
        "!=": "!=",
        ">": ">",
        "<": "<",
        ">=": ">=",
        "<=": "<=",
        "~": "LIKE",
    }
    sql_op = op_map.get(op)
    if not sql_op:
        msg = f"Unsupported operator: {op}"
        raise ValueError(msg)
    return sql_op


def _parse_single_comparison(comparison: str) -> tuple[str, FilterParam | None, bool]:
    """Parse a single comparison expression into a SQL condition and parameter.

    Returns (condition, value, has_param); null comparisons carry no parameter.
    """
    null_match = re.fullmatch(r"(\w+)\s*(=|!=)\s*null", comparison.strip(), re.IGNORECASE)
    if null_match:
        field = null_match.group(1)
        keyword = "IS NULL" if null_match.group(2) == "=" else "IS NOT NULL"
        return f"{field} {keyword}", None, False

    match = re.match(
        r"""(\w+)\s*(=|!=|>|<|>=|<=|~)\s*(['"])([^'"]*)\3""",
        comparison,
    )
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field = match.group(1)
    op = match.group(2)
    raw_value = match.group(4)

    sql_op = _get_sql_operator(op)
    is_like = sql_op == "LIKE"
    value = _parse_value(raw_value, is_like=is_like)

    return f"{field} {sql_op} ?", value, True


def _parse_or_group(or_group: str) -> tuple[str, list[FilterParam]]:
    """Parse a parenthesized OR group into a SQL condition and parameters."""
    inner = or_group[1:-1]  # Remove parentheses
    or_parts = [p.strip() for p in inner.split("||")]
    or_conditions = []
    or_params = []

    for part in or_parts:
        cond, value, has_param = _parse_single_comparison(part)
        or_conditions.append(cond)
        if has_param:
            or_params.append(value)

    return f"({' OR '.join(or_conditions)})", or_params


def _split_and_conditions(filter_query: str) -> list[str]:
    """Split filter query by && while preserving parenthesized groups."""
    parts = []
    current = ""
    paren_depth = 0

    for char in filter_query:
        if char == "(":
            paren_depth += 1
        elif char == ")":
            paren_depth -= 1

        current += char

        if paren_depth == 0 and current.endswith("&&"):
            parts.append(current[:-2].strip())
            current = ""

    if current.strip():
        parts.append(current.strip())

    return parts


def parse_filter(filter_query: str) -> tuple[str, list[FilterParam]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list.

    Supports ``field op "value"`` comparisons joined by ``&&``, parenthesized
    ``||`` groups and ``field = null`` / ``field != null``.
    """
    if not filter_query:
        return "", []

    parts = _split_and_conditions(filter_query)
    conditions = []
    params: list[FilterParam] = []

    for raw_part in parts:
        part = raw_part.strip()

        # Handle parenthesized OR groups
        if part.startswith("(") and part.endswith(")"):
            cond, cond_params = _parse_or_group(part)
            conditions.append(cond)
            params.extend(cond_params)
        else:
            cond, value, has_param = _parse_single_comparison(part)
            conditions.append(cond)
            if has_param:
                params.append(value)

    return " AND ".join(conditions), params


def _equals_clause(equals: dict[str, Any]) -> tuple[str, list[Any]]:
    """Build an AND-ed equality clause with bound parameters for untrusted values."""
    conditions = []
    params: list[Any] = []
    for field, value in equals.items():
        if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", field):
            msg = f"Invalid field name: {field}"
            raise ValueError(msg)
        if value is None:
            conditions.append(f"{field} IS NULL")
        else:
            conditions.append(f"{field} = ?")
            params.append(_serialize_value(value))
    return " AND ".join(conditions), params


def _safe_sort(sort: str) -> str:
    """Validate an ORDER BY expression: comma-separated ``column [ASC|DESC]`` items."""
    if not sort:
        return "id ASC"
    items = [item.strip() for item in sort.split(",")]
    if all(re.match(r"^[A-Za-z_][A-Za-z0-9_]*(\s+(ASC|DESC))?$", item, re.IGNORECASE) for item in items):
        return ", ".join(items)
    logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
    return "id ASC"


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop = asyncio.get_running_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key in _db_connections:
        return _db_connections[cache_key]

    # Create new connection with async lock to prevent races
    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": thread_id, "loop_id": loop_id},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop_id = id(asyncio.get_running_loop())
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key not in _db_connections:
        return

    try:
        async with _db_lock:
            conn = _db_connections.pop(cache_key, None)
            if conn is not None:
                await conn.close()
                logger.info(
                    "Closed SQLite connection",
                    extra={"thread_id": thread_id, "loop_id": loop_id, "db_path": str(path)},
                )
    except Exception as e:
        logger.warning(
            "Error closing SQLite connection",
            extra={"error": str(e), "thread_id": thread_id, "loop_id": loop_id},
        )


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from src.core import schema  # noqa: PLC0415 - schema imports this module

    await schema.init_db(db_path=db_path)


def _row_to_record(cursor: aiosqlite.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    columns = [description[0] for description in cursor.description]
    return _convert_record_ids(dict(zip(columns, row, strict=True)))


def _record_id_param(collection: str, record_id: str) -> int:
    try:
        return int(record_id)
    except (TypeError, ValueError):
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg) from None


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id.

    Raises:
        DuplicateRecordError: If the insert violates a UNIQUE constraint
        DatabaseError: For any other failure
    """
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        columns = list(data.keys())
        columns_str = ", ".join(columns)
        placeholders_str = ", ".join("?" for _ in columns)
        values = [_serialize_value(data[key]) for key in columns]

        query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, values)
        await conn.commit()

        record_id = cursor.lastrowid
        result = await get_record(collection=collection, record_id=str(record_id))

        logger.info("Created record", extra={"collection": collection, "record_id": record_id})
        return result
    except aiosqlite.IntegrityError as e:
        await conn.rollback()
        if "UNIQUE" in str(e):
            logger.info("Duplicate record rejected", extra={"collection": collection, "error": str(e)})
            msg = f"Duplicate record in {collection}: {e}"
            raise DuplicateRecordError(msg) from e
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to create record in {collection}: {e}"
        raise DatabaseError(msg) from e
    except Exception as e:
        if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
            msg = f"Table '{collection}' does not exist. Call init_db() first."
            logger.error("Table not found", extra={"collection": collection})
            raise DatabaseError(msg) from e
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to create record in {collection}: {e}"
        raise DatabaseError(msg) from e


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (_record_id_param(collection, record_id),))
        row = await cursor.fetchone()

        if row is None:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.debug("Retrieved record", extra={"collection": collection, "record_id": record_id})
        return _row_to_record(cursor, row)
    except KeyError:
        raise
    except Exception as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to get record from {collection}: {e}"
        raise DatabaseError(msg) from e


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        set_clause = ", ".join(f"{key} = ?" for key in data)
        values = [_serialize_value(val) for val in data.values()]
        values.append(_record_id_param(collection, record_id))

        query = f"UPDATE {collection} SET {set_clause} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, values)
        await conn.commit()

        if cursor.rowcount == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
        return await get_record(collection=collection, record_id=record_id)
    except KeyError:
        raise
    except Exception as e:
        logger.error("update_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to update record in {collection}: {e}"
        raise DatabaseError(msg) from e


async def update_record_if(
    *,
    collection: str,
    record_id: str,
    data: dict[str, Any],
    filter_query: str,
) -> dict[str, Any] | None:
    """Update a record only while it still matches ``filter_query``.

    The guard and the write happen in one UPDATE statement, so when several
    callers race for the same transition exactly one of them sees the record.

    Returns:
        The updated record, or None if the record no longer matched the guard
    """
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        where_clause, params = parse_filter(filter_query)
        set_clause = ", ".join(f"{key} = ?" for key in data)
        values: list[Any] = [_serialize_value(val) for val in data.values()]
        values.append(_record_id_param(collection, record_id))
        values.extend(params)

        guard = f" AND {where_clause}" if where_clause else ""
        query = f"UPDATE {collection} SET {set_clause} WHERE id = ?{guard}"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, values)
        await conn.commit()

        if cursor.rowcount == 0:
            logger.info(
                "Conditional update matched nothing",
                extra={"collection": collection, "record_id": record_id, "filter_query": filter_query},
            )
            return None

        logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
        return await get_record(collection=collection, record_id=record_id)
    except KeyError:
        raise
    except Exception as e:
        logger.error(
            "update_record_if_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)}
        )
        msg = f"Failed to update record in {collection}: {e}"
        raise DatabaseError(msg) from e


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by ID, raising RecordNotFoundError if not found."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (_record_id_param(collection, record_id),))
        await conn.commit()

        if cursor.rowcount == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})
    except KeyError:
        raise
    except Exception as e:
        logger.error("delete_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to delete record from {collection}: {e}"
        raise DatabaseError(msg) from e


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
    offset: int | None = None,
    equals: dict[str, Any] | None = None,
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination.

    ``offset`` overrides the page-derived offset when given. ``equals`` adds
    field equality conditions bound as parameters, for caller-supplied values.
    """
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        conditions: list[str] = []
        params: list[Any] = []
        if filter_query:
            filter_clause, params = parse_filter(filter_query)
            conditions.append(filter_clause)
        if equals:
            equals_clause, equals_params = _equals_clause(equals)
            conditions.append(equals_clause)
            params.extend(equals_params)
        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        row_offset = offset if offset is not None else (page - 1) * per_page

        query = f"SELECT * FROM {collection} {where_clause} ORDER BY {_safe_sort(sort)} LIMIT ? OFFSET ?"  # noqa: S608 - collection is validated
        params.extend([per_page, row_offset])

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()
        records = [_row_to_record(cursor, row) for row in rows]

        logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
        return records
    except Exception as e:
        logger.error("list_records_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to list records from {collection}: {e}"
        raise DatabaseError(msg) from e


async def list_all_records(
    *,
    collection: str,
    filter_query: str = "",
    sort: str = "",
    equals: dict[str, Any] | None = None,
) -> list[dict[str, Any]]:
    """Return every record matching the filter, fetching page by page."""
    page_size = constants.DEFAULT_PER_PAGE_LIMIT
    records: list[dict[str, Any]] = []
    page = 1
    while True:
        batch = await list_records(
            collection=collection,
            page=page,
            per_page=page_size,
            filter_query=filter_query,
            sort=sort,
            equals=equals,
        )
        records.extend(batch)
        if len(batch) < page_size:
            return records
        page += 1


async def count_records(*, collection: str, filter_query: str = "") -> int:
    """Count records matching the filter."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        where_clause, params = parse_filter(filter_query)
        where_sql = f"WHERE {where_clause}" if where_clause else ""

        query = f"SELECT COUNT(*) FROM {collection} {where_sql}"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, params)
        row = await cursor.fetchone()
        return int(row[0]) if row else 0
    except Exception as e:
        logger.error("count_records_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to count records in {collection}: {e}"
        raise DatabaseError(msg) from e


async def get_first_record_by(*, collection: str, sort: str = "", **equals: Any) -> dict[str, Any] | None:
    """Return the first record whose fields equal the given values, or None.

    Values are bound as query parameters, so any string is safe to look up.
    """
    if not equals:
        msg = "At least one field is required"
        raise ValueError(msg)

    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        where_clause, params = _equals_clause(equals)
        query = f"SELECT * FROM {collection} WHERE {where_clause} ORDER BY {_safe_sort(sort)} LIMIT 1"  # noqa: S608 - collection and fields are validated
        cursor = await conn.execute(query, params)
        row = await cursor.fetchone()

        if row is None:
            return None

        return _row_to_record(cursor, row)
    except Exception as e:
        logger.error(
            "get_first_record_by_failed", extra={"collection": collection, "fields": list(equals), "error": str(e)}
        )
        msg = f"Failed to get first record from {collection}: {e}"
        raise DatabaseError(msg) from e
