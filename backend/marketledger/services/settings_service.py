from __future__ import annotations

from decimal import Decimal
from typing import Any

from ..extensions import db
from ..models import AdminSetting
from ..money import to_money
from ..settings_catalog import SETTINGS_CATALOG, CATALOG_BY_KEY
from marketledger.time_utils import utcnow


class SettingsError(ValueError):
    pass


class SettingsValidationError(SettingsError):
    pass


class SettingsNotFoundError(SettingsError):
    pass


def _catalog_entry(key: str) -> dict:
    entry = CATALOG_BY_KEY.get(key)
    if entry is None:
        raise SettingsNotFoundError(f"Unknown setting: {key}")
    return entry


def _coerce_value(entry: dict, raw_value: Any) -> Any:
    key = entry["key"]
    t = entry["value_type"]
    v = raw_value
    if t == "bool":
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            s = v.strip().lower()
            if s in {"true", "1", "yes", "on"}:
                return True
            if s in {"false", "0", "no", "off"}:
                return False
        raise SettingsValidationError(f"{key}: expected boolean")
    if t == "int":
        if isinstance(v, bool):
            raise SettingsValidationError(f"{key}: expected integer")
        if isinstance(v, int):
            return v
        if isinstance(v, float) and int(v) == v:
            return int(v)
        if isinstance(v, str):
            try:
                return int(v.strip())
            except ValueError:
                pass
        raise SettingsValidationError(f"{key}: expected integer")
    if t == "decimal":
        try:
            return to_money(v, field=key)
        except ValueError:
            raise SettingsValidationError(f"{key}: expected decimal")
    return v


def _validate_constraints(entry: dict, value: Any):
    validation = entry.get("validation") or {}
    if entry["value_type"] in {"int", "decimal"}:
        if "min" in validation and value < validation["min"]:
            raise SettingsValidationError(f"{entry['key']}: must be >= {validation['min']}")
        if "max" in validation and value > validation["max"]:
            raise SettingsValidationError(f"{entry['key']}: must be <= {validation['max']}")


def _serialize(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def get_setting(key: str) -> Any:
    """
    Typed value for a catalog key.

    Stored row wins; a missing row (or one holding garbage) falls back to the
    catalog default so billing never stalls on a bad admin edit.
    """
    entry = _catalog_entry(key)
    row = db.session.query(AdminSetting).filter_by(setting_key=key).first()
    if row is not None:
        try:
            return _coerce_value(entry, row.setting_value)
        except SettingsValidationError:
            pass
    return _coerce_value(entry, entry["default"])


def get_decimal(key: str) -> Decimal:
    return get_setting(key)


def get_int(key: str) -> int:
    return get_setting(key)


def get_bool(key: str) -> bool:
    return get_setting(key)


def list_settings() -> list[dict]:
    rows = {r.setting_key: r for r in db.session.query(AdminSetting).all()}
    out = []
    for entry in SETTINGS_CATALOG:
        row = rows.get(entry["key"])
        out.append({
            "key": entry["key"],
            "value_type": entry["value_type"],
            "value": _serialize(get_setting(entry["key"])),
            "default": entry["default"],
            "description": entry["description"],
            "is_default": row is None,
            "updated_by_user_id": row.updated_by_user_id if row else None,
        })
    return out


def set_setting(key: str, value: Any, *, updated_by_user_id: int | None = None) -> AdminSetting:
    """Validate and upsert one setting. Commits."""
    entry = _catalog_entry(key)
    coerced = _coerce_value(entry, value)
    _validate_constraints(entry, coerced)

    row = db.session.query(AdminSetting).filter_by(setting_key=key).first()
    if row is None:
        row = AdminSetting(
            setting_key=key,
            setting_value=_serialize(coerced),
            description=entry["description"],
            updated_by_user_id=updated_by_user_id,
        )
        db.session.add(row)
    else:
        row.setting_value = _serialize(coerced)
        row.updated_by_user_id = updated_by_user_id
        row.updated_at = utcnow()

    db.session.commit()
    return row


def update_settings(values: dict, *, updated_by_user_id: int | None = None) -> list[dict]:
    """
    Apply several settings at once.

    All values are validated before anything is written.
    """
    if not isinstance(values, dict) or not values:
        raise SettingsValidationError("No settings provided")
    for key, value in values.items():
        entry = _catalog_entry(key)
        _validate_constraints(entry, _coerce_value(entry, value))
    for key, value in values.items():
        set_setting(key, value, updated_by_user_id=updated_by_user_id)
    return list_settings()


def ensure_defaults_seeded() -> int:
    """Insert catalog defaults for keys with no row. Idempotent."""
    existing = {k for (k,) in db.session.query(AdminSetting.setting_key).all()}
    created = 0
    for entry in SETTINGS_CATALOG:
        if entry["key"] in existing:
            continue
        db.session.add(AdminSetting(
            setting_key=entry["key"],
            setting_value=entry["default"],
            description=entry["description"],
        ))
        created += 1
    db.session.commit()
    return created
