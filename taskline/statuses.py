"""Checkbox status symbols and the registry that maps them to status keys."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

STATUS_SYMBOL_PATTERN = re.compile(r"^[A-Za-z0-9]$")
EXCLUDED_SYMBOLS = ("/", "|", "_", "$", "#", "^", "*")
RESERVED_SYMBOLS = (" ", "x", "X", "!", "-", "/", "?", "n")
MAX_CUSTOM_STATUSES = 3


class InvalidCustomStatus(ValueError):
    """Raised when a user-defined status cannot join the registry."""


@dataclass(frozen=True)
class StatusDescriptor:
    key: str
    symbol: str
    name: str
    background_color: str
    text_color: str
    is_default: bool = False
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "symbol": self.symbol,
            "name": self.name,
            "description": self.description,
            "backgroundColor": self.background_color,
            "textColor": self.text_color,
            "isDefault": self.is_default,
        }


DEFAULT_STATUSES: tuple[StatusDescriptor, ...] = (
    StatusDescriptor("todo", " ", "Todo", "#FFFFFF", "#333333", True, "Open task"),
    StatusDescriptor("done", "x", "Done", "#52c41a", "#FFFFFF", True, "Completed task"),
    StatusDescriptor(
        "important", "!", "Important", "#ff4d4f", "#FFFFFF", True, "Important task"
    ),
    StatusDescriptor(
        "canceled", "-", "Canceled", "#d9d9d9", "#666666", True, "Canceled task"
    ),
    StatusDescriptor(
        "in_progress", "/", "In progress", "#faad14", "#FFFFFF", True, "Task in progress"
    ),
    StatusDescriptor(
        "question", "?", "Question", "#ffc069", "#333333", True, "Task with open questions"
    ),
    StatusDescriptor("start", "n", "Started", "#40a9ff", "#FFFFFF", True, "Started task"),
)


@dataclass(frozen=True)
class SymbolCheck:
    valid: bool
    reason: str | None = None


def validate_symbol(candidate: Any, is_custom: bool = True) -> SymbolCheck:
    """Check whether ``candidate`` may be used as a checkbox status symbol."""
    if not isinstance(candidate, str) or len(candidate) != 1:
        return SymbolCheck(False, "Symbol must be a single character.")
    if is_custom and candidate in RESERVED_SYMBOLS:
        return SymbolCheck(
            False, f'Symbol "{candidate}" is already used by a default status.'
        )
    if candidate in EXCLUDED_SYMBOLS:
        return SymbolCheck(False, "Symbol must not be a special character.")
    if not STATUS_SYMBOL_PATTERN.match(candidate):
        return SymbolCheck(False, "Symbol must be a letter or a digit.")
    return SymbolCheck(True)


class StatusRegistry:
    """Lookup tables over the active status descriptors.

    Built once whenever settings change and passed by reference into the
    parser and serializer.
    """

    def __init__(self, descriptors: Iterable[StatusDescriptor] = DEFAULT_STATUSES) -> None:
        by_symbol: dict[str, StatusDescriptor] = {}
        by_key: dict[str, StatusDescriptor] = {}
        custom_count = 0
        for descriptor in descriptors:
            if not descriptor.is_default:
                custom_count += 1
                check = validate_symbol(descriptor.symbol, is_custom=True)
                if not check.valid:
                    raise InvalidCustomStatus(
                        f"Status '{descriptor.key}': {check.reason}"
                    )
            if descriptor.symbol in by_symbol:
                raise InvalidCustomStatus(
                    f"Status symbol '{descriptor.symbol}' is used more than once."
                )
            if descriptor.key in by_key:
                raise InvalidCustomStatus(
                    f"Status key '{descriptor.key}' is used more than once."
                )
            by_symbol[descriptor.symbol] = descriptor
            by_key[descriptor.key] = descriptor

        if custom_count > MAX_CUSTOM_STATUSES:
            raise InvalidCustomStatus(
                f"At most {MAX_CUSTOM_STATUSES} custom statuses are allowed."
            )
        missing = [s.key for s in DEFAULT_STATUSES if s.key not in by_key]
        if missing:
            raise InvalidCustomStatus(
                f"Default statuses are missing: {', '.join(missing)}."
            )

        self._by_symbol = by_symbol
        self._by_key = by_key

    def by_symbol(self, symbol: str) -> StatusDescriptor | None:
        return self._by_symbol.get(symbol)

    def by_key(self, key: str) -> StatusDescriptor | None:
        return self._by_key.get(key)

    def color_of(self, key: str) -> dict[str, str] | None:
        descriptor = self._by_key.get(key)
        if descriptor is None:
            return None
        return {"bg": descriptor.background_color, "text": descriptor.text_color}

    def descriptors(self) -> list[StatusDescriptor]:
        return list(self._by_key.values())

    def custom(self) -> list[StatusDescriptor]:
        return [d for d in self._by_key.values() if not d.is_default]


DEFAULT_REGISTRY = StatusRegistry()


def build_status_registry(
    custom_entries: Iterable[Mapping[str, Any]] | None = None,
) -> StatusRegistry:
    """Build a registry from the defaults plus settings-style custom entries."""
    descriptors = list(DEFAULT_STATUSES)
    for index, entry in enumerate(custom_entries or []):
        if not isinstance(entry, Mapping):
            raise InvalidCustomStatus(f"Custom status at index {index} must be an object.")
        key = entry.get("key")
        if not isinstance(key, str) or not key.strip():
            raise InvalidCustomStatus(
                f"Custom status at index {index} must define a non-empty key."
            )
        symbol = entry.get("symbol")
        check = validate_symbol(symbol, is_custom=True)
        if not check.valid:
            raise InvalidCustomStatus(f"Custom status '{key}': {check.reason}")
        descriptors.append(
            StatusDescriptor(
                key=key.strip(),
                symbol=symbol,
                name=str(entry.get("name") or key).strip(),
                background_color=str(entry.get("backgroundColor", "#FFFFFF")),
                text_color=str(entry.get("textColor", "#333333")),
                is_default=False,
                description=str(entry.get("description", "")),
            )
        )
    return StatusRegistry(descriptors)
