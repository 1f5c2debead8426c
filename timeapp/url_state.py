"""
Query-string state for the dashboard views.

Filter, sort and pagination state lives in the URL so views can be shared and
restored. This module parses a query string into typed parameters (falling
back to defaults for anything missing or invalid) and serializes parameters
back, leaving defaults out so URLs stay short.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional
from urllib.parse import parse_qsl, urlencode

logger = logging.getLogger(__name__)

DEFAULT_TAB = "sessions"
VALID_TABS = ["sessions", "analytics", "export"]
SORT_FIELDS = ["start_timestamp", "duration_seconds", "name"]
SORT_ORDERS = ["asc", "desc"]
MAX_SEARCH_LENGTH = 100


@dataclass
class ParameterConfig:
    type: str  # string | number | boolean | array | date
    default: Any = None
    validate: Optional[Callable[[Any], bool]] = None
    transform: Optional[Callable[[str], Any]] = None
    serialize: Optional[Callable[[Any], str]] = None


@dataclass
class UrlState:
    tab: str
    parameters: dict[str, Any] = field(default_factory=dict)


def _split_list(value: str) -> list[str]:
    return [v for v in value.split(",") if v]


def _parse_date(value: str) -> date:
    return date.fromisoformat(value[:10])


def _date_param(value: Any) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return ""


DEFAULT_PARAMETER_CONFIGS: dict[str, ParameterConfig] = {
    "tab": ParameterConfig("string", DEFAULT_TAB, validate=lambda v: isinstance(v, str)),
    "search": ParameterConfig(
        "string", "", validate=lambda v: isinstance(v, str) and len(v) <= MAX_SEARCH_LENGTH
    ),
    "tags": ParameterConfig(
        "array",
        [],
        transform=_split_list,
        serialize=lambda v: ",".join(v) if isinstance(v, list) else "",
    ),
    "from": ParameterConfig(
        "date", transform=_parse_date, serialize=_date_param, validate=lambda v: isinstance(v, date)
    ),
    "to": ParameterConfig(
        "date", transform=_parse_date, serialize=_date_param, validate=lambda v: isinstance(v, date)
    ),
    "sort": ParameterConfig("string", "start_timestamp", validate=lambda v: v in SORT_FIELDS),
    "order": ParameterConfig("string", "desc", validate=lambda v: v in SORT_ORDERS),
    "page": ParameterConfig(
        "number",
        1,
        transform=lambda v: int(v, 10),
        validate=lambda v: isinstance(v, int) and not isinstance(v, bool) and v > 0,
    ),
}

# Which filters still make sense after switching to a tab
DEFAULT_FILTER_COMPATIBILITY: dict[str, list[str]] = {
    "sessions": ["search", "tags", "sort", "order", "page"],
    "analytics": ["from", "to", "search", "tags"],
    "export": ["from", "to", "tags", "format"],
}


def _as_mapping(query: str | Mapping[str, str]) -> dict[str, str]:
    if isinstance(query, str):
        return dict(parse_qsl(query.lstrip("?"), keep_blank_values=True))
    return {k: query[k] for k in query.keys()}


def _to_url(params: Mapping[str, str]) -> str:
    encoded = urlencode(list(params.items()))
    return f"?{encoded}" if encoded else ""


class UrlStateCodec:
    def __init__(
        self,
        valid_tabs: Optional[list[str]] = None,
        parameter_schema: Optional[dict[str, ParameterConfig]] = None,
        filter_compatibility: Optional[dict[str, list[str]]] = None,
    ):
        self.valid_tabs = valid_tabs or list(VALID_TABS)
        self.configs = {**DEFAULT_PARAMETER_CONFIGS, **(parameter_schema or {})}
        self.filter_compatibility = filter_compatibility or DEFAULT_FILTER_COMPATIBILITY

    def parse_parameter(self, key: str, value: Optional[str]) -> Any:
        """Typed value for ``key``; the default when missing, unparsable or invalid."""
        config = self.configs.get(key)
        if config is None:
            return None
        if value is None:
            return config.default

        try:
            if config.transform:
                parsed = config.transform(value)
            elif config.type == "number":
                parsed = int(value, 10)
            elif config.type == "boolean":
                parsed = value == "true"
            elif config.type == "array":
                parsed = _split_list(value)
            elif config.type == "date":
                parsed = _parse_date(value)
            else:
                parsed = value
        except (TypeError, ValueError):
            return config.default

        if key == "tab":
            return parsed if parsed in self.valid_tabs else config.default
        if config.validate and not config.validate(parsed):
            return config.default
        return parsed

    def serialize_parameter(self, key: str, value: Any, include_default: bool = False) -> Optional[str]:
        config = self.configs.get(key)
        if config is None or value is None:
            return None
        if value == config.default and not include_default:
            return None

        if config.serialize:
            serialized = config.serialize(value)
        elif config.type == "array":
            serialized = ",".join(value) if isinstance(value, list) else ""
        elif config.type == "date":
            serialized = _date_param(value)
        elif config.type == "boolean":
            serialized = "true" if value else ""
        else:
            serialized = str(value)
        return serialized or None

    def parse(self, query: str | Mapping[str, str]) -> UrlState:
        raw = _as_mapping(query)
        parameters = {key: self.parse_parameter(key, raw.get(key)) for key in self.configs}
        return UrlState(tab=parameters["tab"], parameters=parameters)

    def build_query(self, parameters: Mapping[str, Any]) -> str:
        params = {}
        for key, value in parameters.items():
            serialized = self.serialize_parameter(key, value)
            if serialized is not None:
                params[key] = serialized
        return _to_url(params)

    def update(self, query: str | Mapping[str, str], updates: Mapping[str, Any]) -> str:
        """Query string after applying ``updates`` on top of the current state."""
        current = self.parse(query).parameters
        return self.build_query({**current, **updates})

    def switch_tab(self, query: str | Mapping[str, str], new_tab: str, preserve_filters: bool = True) -> str:
        if new_tab not in self.valid_tabs:
            logger.warning("Invalid tab: %s. Valid tabs: %s", new_tab, self.valid_tabs)
            raise ValueError(f"Invalid tab: {new_tab}")

        params = _as_mapping(query)
        params.pop("tab", None)
        if preserve_filters:
            compatible = self.filter_compatibility.get(new_tab, [])
            params = {k: v for k, v in params.items() if k in compatible}
        else:
            params = {}

        if new_tab != DEFAULT_TAB:
            params = {"tab": new_tab, **params}
        return _to_url(params)

    def clear_filters(self, query: str | Mapping[str, str]) -> str:
        current = self.parse(query).parameters
        updates = {key: config.default for key, config in self.configs.items() if key != "tab"}
        return self.build_query({**current, **updates})

    def share_url(self, state: UrlState, include_defaults: bool = False) -> str:
        params = {}
        for key, value in state.parameters.items():
            serialized = self.serialize_parameter(key, value, include_default=include_defaults)
            if serialized is not None:
                params[key] = serialized
        return _to_url(params)


codec = UrlStateCodec()
