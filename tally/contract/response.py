"""tally.contract.response — command result carrying ordered string attributes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass
class Response:
    attributes: List[Tuple[str, str]] = field(default_factory=list)

    def add_attribute(self, key: str, value: Any) -> "Response":
        self.attributes.append((str(key), str(value)))
        return self

    def attribute(self, key: str) -> Optional[str]:
        for k, v in self.attributes:
            if k == key:
                return v
        return None

    def keys(self) -> List[str]:
        return [k for k, _ in self.attributes]

    def to_dict(self) -> Dict[str, Any]:
        return {"attributes": [{"key": k, "value": v} for k, v in self.attributes]}


__all__ = ["Response"]
