from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ResultField:
    label: str
    value: str
    inline: bool = False


@dataclass
class CommandResult:
    """Structured payload handed to whatever renders messages."""

    success: bool = True
    headline: str = ""
    description: str = ""
    fields: list[ResultField] = field(default_factory=list)
    image: str | None = None
    thumbnail: str | None = None
    footer: str | None = None
    error_kind: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def add_field(self, label: str, value: Any, inline: bool = False) -> "CommandResult":
        self.fields.append(ResultField(label=label, value=str(value), inline=inline))
        return self

    @classmethod
    def failure(cls, message: str, error_kind: str | None = None) -> "CommandResult":
        return cls(success=False, headline="Command rejected", description=message, error_kind=error_kind)
