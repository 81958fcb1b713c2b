"""
Response models and record (de)serialization helpers.

Records are plain dicts unless a ``model`` is given. A model is either a
dataclass (built from the known fields only, so server-added keys such as
``collectionId`` never break construction) or any callable taking the dict.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Type, Union

RecordModel = Optional[Union[Type[Any], Callable[[Dict[str, Any]], Any]]]


def decode_record(data: Any, model: RecordModel = None) -> Any:
    """Build a record object from its JSON dict."""
    if model is None:
        return data
    if not isinstance(data, dict):
        raise TypeError(f"Expected a JSON object for a record, got {type(data).__name__}")
    if dataclasses.is_dataclass(model):
        names = {f.name for f in dataclasses.fields(model) if f.init}
        return model(**{k: v for k, v in data.items() if k in names})
    return model(data)


def encode_record(record: Any) -> Dict[str, Any]:
    """Turn a dict or dataclass instance into a JSON-ready dict."""
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return dataclasses.asdict(record)
    if isinstance(record, dict):
        return record
    raise TypeError(f"Cannot encode record of type {type(record).__name__}")


@dataclass
class ListResult:
    """One page of records"""
    page: int
    per_page: int
    total_items: int
    total_pages: int
    items: List[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], model: RecordModel = None) -> 'ListResult':
        return cls(
            page=data.get("page", 1),
            per_page=data.get("perPage", 0),
            total_items=data.get("totalItems", 0),
            total_pages=data.get("totalPages", 0),
            items=[decode_record(item, model) for item in data.get("items", [])]
        )


@dataclass
class AuthResult:
    """Token and record returned by the auth endpoints"""
    token: str
    record: Any
    meta: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], model: RecordModel = None) -> 'AuthResult':
        return cls(
            token=data["token"],
            record=decode_record(data["record"], model),
            meta=data.get("meta")
        )


@dataclass
class AuthMethods:
    """Authentication methods enabled for a collection"""
    password_enabled: bool
    identity_fields: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuthMethods':
        password = data.get("password") or {}
        return cls(
            password_enabled=bool(password.get("enabled", False)),
            identity_fields=list(password.get("identityFields", []))
        )


def record_id(record: Any) -> Optional[str]:
    """Id of a dict or object record, if it has one."""
    if isinstance(record, dict):
        return record.get("id")
    return getattr(record, "id", None)
