"""
Ownership-scoped CRUD over one table.

A ``ResourceStore`` subclass declares its table, its fields and their
normalization, its ordering and (optionally) a per-user uniqueness key.
Every statement it issues is filtered by ``user_id``, so a row owned by
somebody else is indistinguishable from a row that does not exist.
"""

import copy
import json
import logging
import math
import re
from typing import Any, Dict, Iterable, List, Optional

from ats.dates import parse_date, utcnow_iso
from ats.errors import DuplicateError, IntegrityConflict, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

FIELD_KINDS = ("text", "date", "bool", "int", "float", "json", "csv_list", "array")

CURRENCY_NOISE = re.compile(r"[\s$€£,]")
TRUE_STRINGS = {"true", "1", "yes", "on"}
FALSE_STRINGS = {"false", "0", "no", "off", ""}


class Field:
    """
    One mutable column of a resource.

    Args:
        name: Column name, also the JSON key clients send
        kind: One of FIELD_KINDS; decides coercion and storage encoding
        required: Must be non-empty on create and may not be emptied on update
        default: Value used when the client omits the field or sends it empty
        choices: Allowed values for text fields
    """

    def __init__(
        self,
        name: str,
        kind: str = "text",
        required: bool = False,
        default: Any = None,
        choices: Optional[Iterable[str]] = None,
    ):
        if kind not in FIELD_KINDS:
            raise ValueError(f"Unknown field kind: {kind}")
        self.name = name
        self.kind = kind
        self.required = required
        self.default = default
        self.choices = list(choices) if choices else None

    def __repr__(self):
        return f"Field({self.name!r}, kind={self.kind!r}, required={self.required})"

    def _default(self):
        return copy.deepcopy(self.default)

    def coerce(self, value: Any) -> Any:
        """
        Normalize a client-supplied value.

        Raises:
            ValidationError: If the value cannot be converted
        """
        kind = self.kind

        if kind == "text":
            if value is None:
                return self._default()
            if isinstance(value, (dict, list)):
                raise ValidationError(f"{self.name} must be a string")
            text = str(value).strip()
            if not text:
                return self._default()
            if self.choices and text not in self.choices:
                raise ValidationError(f"{self.name} must be one of: {', '.join(self.choices)}")
            return text

        if kind == "date":
            try:
                parsed = parse_date(value)
            except (TypeError, ValueError):
                raise ValidationError(f"{self.name} must be a date (YYYY-MM-DD)")
            return parsed.isoformat() if parsed else self._default()

        if kind == "bool":
            if value is None:
                return bool(self.default)
            if isinstance(value, bool):
                return value
            if isinstance(value, (int, float)):
                return bool(value)
            text = str(value).strip().lower()
            if text in TRUE_STRINGS:
                return True
            if text in FALSE_STRINGS:
                return False
            raise ValidationError(f"{self.name} must be true or false")

        if kind == "int":
            if value is None or isinstance(value, bool):
                return self._default()
            if isinstance(value, (int, float)):
                number = value
            else:
                # "$120,000.50" -> 120000
                text = CURRENCY_NOISE.sub("", str(value))
                if not text:
                    return self._default()
                try:
                    number = float(text)
                except ValueError:
                    raise ValidationError(f"{self.name} must be a whole number")
            if not math.isfinite(number):
                raise ValidationError(f"{self.name} must be a whole number")
            if number < 0:
                raise ValidationError(f"{self.name} cannot be negative")
            return int(number)

        if kind == "float":
            if value is None or value == "" or isinstance(value, bool):
                return self._default()
            try:
                return float(value)
            except (TypeError, ValueError):
                raise ValidationError(f"{self.name} must be a number")

        if kind == "csv_list":
            if value is None or value == "":
                return self._default() if self.default is not None else []
            if isinstance(value, str):
                return [item.strip() for item in value.split(",") if item.strip()]
            if isinstance(value, list):
                return [str(item).strip() for item in value if str(item).strip()]
            raise ValidationError(f"{self.name} must be a list or comma-separated string")

        if kind == "array":
            if value is None:
                return self._default()
            if not isinstance(value, list):
                raise ValidationError(f"{self.name} must be an array")
            return value

        # json: any JSON value
        return self._default() if value is None else value

    def is_empty(self, value: Any) -> bool:
        return value is None or value == "" or (self.kind == "csv_list" and value == [])

    def encode(self, value: Any) -> Any:
        """Convert a coerced value into its column representation."""
        if value is None:
            return None
        if self.kind in ("json", "csv_list", "array"):
            return json.dumps(value)
        return value

    def decode(self, value: Any) -> Any:
        """Convert a column value back into its JSON representation."""
        if self.kind == "bool":
            return bool(value) if value is not None else False
        if self.kind in ("json", "csv_list", "array") and isinstance(value, str):
            try:
                return json.loads(value)
            except ValueError:
                # Older rows stored plain comma-separated text
                if self.kind == "csv_list":
                    return [item.strip() for item in value.split(",") if item.strip()]
                return value
        return value


class ResourceStore:
    """
    Generic CRUD accessor. Subclasses set the class attributes below.

    Examples:
        >>> store = SkillStore(db)
        >>> skill = store.create(user_id, {"name": "Python", "category": "Technical"})
        >>> store.update(skill["id"], user_id, {"proficiency": "Expert"})
        >>> store.delete(skill["id"], user_id)
    """

    table: str = ""
    fields: List[Field] = []
    order_by: str = "created_at DESC, id DESC"
    unique_field: Optional[str] = None

    singular: str = "record"
    plural: str = "records"
    label: str = "Record"
    required_message: Optional[str] = None
    duplicate_message: str = "Duplicate entry"

    def __init__(self, db):
        self.db = db
        self.field_map = {f.name: f for f in self.fields}

    def __repr__(self):
        return f"{type(self).__name__}(table={self.table!r})"

    # ===== Hooks =====

    def clean(self, values: Dict[str, Any], existing: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Apply cross-field rules to a full set of values. Raise ValidationError to reject."""
        return values

    def decorate(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Add computed fields to a record before it is returned."""
        return record

    def after_create(self, conn, record: Dict[str, Any]) -> None:
        pass

    def after_update(self, conn, before: Dict[str, Any], changes: Dict[str, Any]) -> None:
        pass

    # ===== Helpers =====

    def _decode(self, row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if row is None:
            return None
        record = dict(row)
        for name, field in self.field_map.items():
            if name in record:
                record[name] = field.decode(record[name])
        return self.decorate(record)

    def _require_mapping(self, data: Any) -> Dict[str, Any]:
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return data

    def _missing_message(self, missing: List[str]) -> str:
        if self.required_message:
            return self.required_message
        return f"Missing required fields: {', '.join(missing)}"

    def _check_unique(self, conn, user_id: int, values: Dict[str, Any], exclude_id: Optional[int] = None):
        if not self.unique_field or values.get(self.unique_field) is None:
            return
        sql = f"SELECT id FROM {self.table} WHERE user_id = ? AND LOWER({self.unique_field}) = LOWER(?)"
        params = [user_id, values[self.unique_field]]
        if exclude_id is not None:
            sql += " AND id != ?"
            params.append(exclude_id)
        if conn.fetch_one(sql, params):
            raise DuplicateError(self.duplicate_message)

    def _fetch_owned(self, conn, record_id: int, user_id: int) -> Optional[Dict[str, Any]]:
        return conn.fetch_one(
            f"SELECT * FROM {self.table} WHERE id = ? AND user_id = ?", (record_id, user_id)
        )

    def _not_found(self) -> NotFoundError:
        return NotFoundError(f"{self.label} not found")

    # ===== Operations =====

    def create(self, user_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a row owned by ``user_id`` and return it.

        Raises:
            ValidationError: Missing required field or uncoercible value
            DuplicateError: Uniqueness key already used by this user
        """
        data = self._require_mapping(data)
        values = {f.name: f.coerce(data.get(f.name)) for f in self.fields}

        missing = [f.name for f in self.fields if f.required and f.is_empty(values[f.name])]
        if missing:
            raise ValidationError(self._missing_message(missing))

        values = self.clean(values, None)

        with self.db.connection() as conn:
            self._check_unique(conn, user_id, values)

            columns = ["user_id"] + list(values) + ["created_at"]
            params = [user_id]
            params += [self.field_map[name].encode(value) for name, value in values.items()]
            params.append(utcnow_iso())
            placeholders = ", ".join("?" for _ in columns)

            try:
                new_id = conn.insert(
                    f"INSERT INTO {self.table} ({', '.join(columns)}) VALUES ({placeholders})",
                    params,
                )
            except IntegrityConflict:
                if self.unique_field:
                    raise DuplicateError(self.duplicate_message)
                raise

            self.after_create(conn, self._decode(self._fetch_owned(conn, new_id, user_id)))
            record = self._decode(self._fetch_owned(conn, new_id, user_id))

        logger.debug(f"Created {self.singular} {new_id} for user {user_id}")
        return record

    def list(self, user_id: int, **filters) -> List[Dict[str, Any]]:
        """
        Every row owned by ``user_id`` in the resource's order.

        Keyword filters match known fields exactly; ``None`` filters are ignored.
        """
        sql = f"SELECT * FROM {self.table} WHERE user_id = ?"
        params: List[Any] = [user_id]
        for name, value in filters.items():
            if value is None:
                continue
            if name not in self.field_map:
                raise ValueError(f"Unknown filter for {self.table}: {name}")
            sql += f" AND {name} = ?"
            params.append(self.field_map[name].encode(value))
        sql += f" ORDER BY {self.order_by}"

        with self.db.connection() as conn:
            rows = conn.fetch_all(sql, params)
        return [self._decode(row) for row in rows]

    def get(self, record_id: int, user_id: int) -> Dict[str, Any]:
        """Raises NotFoundError when the row is absent or owned by someone else."""
        with self.db.connection() as conn:
            row = self._fetch_owned(conn, record_id, user_id)
        if row is None:
            raise self._not_found()
        return self._decode(row)

    def update(self, record_id: int, user_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply a partial update. Keys that are not mutable fields are ignored.

        Raises:
            NotFoundError: No row matches both id and user
            ValidationError: No mutable field supplied, or a value is invalid
            DuplicateError: Renamed onto an existing uniqueness key
        """
        data = self._require_mapping(data)
        present = [f for f in self.fields if f.name in data]

        with self.db.connection() as conn:
            row = self._fetch_owned(conn, record_id, user_id)
            if row is None:
                raise self._not_found()
            if not present:
                raise ValidationError("No valid fields to update")

            before = self._decode(row)
            changes = {f.name: f.coerce(data[f.name]) for f in present}

            merged = {f.name: before.get(f.name) for f in self.fields}
            merged.update(changes)

            for f in self.fields:
                if f.required and f.is_empty(merged[f.name]):
                    raise ValidationError(f"{f.name} cannot be empty")

            merged = self.clean(merged, before)
            updates = {
                name: value
                for name, value in merged.items()
                if name in changes or value != before.get(name)
            }

            if self.unique_field and self.unique_field in updates:
                self._check_unique(conn, user_id, merged, exclude_id=record_id)

            assignments = ", ".join(f"{name} = ?" for name in updates)
            params = [self.field_map[name].encode(value) for name, value in updates.items()]
            params += [record_id, user_id]

            try:
                conn.execute(
                    f"UPDATE {self.table} SET {assignments} WHERE id = ? AND user_id = ?", params
                )
            except IntegrityConflict:
                if self.unique_field:
                    raise DuplicateError(self.duplicate_message)
                raise

            self.after_update(conn, before, updates)
            record = self._decode(self._fetch_owned(conn, record_id, user_id))

        logger.debug(f"Updated {self.singular} {record_id} for user {user_id}: {sorted(updates)}")
        return record

    def delete(self, record_id: int, user_id: int) -> None:
        """Raises NotFoundError when nothing was deleted."""
        with self.db.connection() as conn:
            deleted = conn.execute(
                f"DELETE FROM {self.table} WHERE id = ? AND user_id = ?", (record_id, user_id)
            )
        if deleted == 0:
            raise self._not_found()
        logger.debug(f"Deleted {self.singular} {record_id} for user {user_id}")
