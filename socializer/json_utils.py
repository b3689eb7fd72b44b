"""
Key-case conversion between stored camelCase documents and snake_case records.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Literal

Direction = Literal["snake_to_camel", "camel_to_snake"]

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_to_camel(value: str) -> str:
    head, *rest = value.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def camel_to_snake(value: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", value).lower()


def convert_keys(data: Any, direction: Direction, opaque: Iterable[str] = ()) -> Any:
    """
    Recursively convert dict keys.

    Keys listed in `opaque` (in either spelling) keep their value untouched;
    they hold maps keyed by user data such as portfolio names or ids.
    """
    convert = snake_to_camel if direction == "snake_to_camel" else camel_to_snake
    opaque_keys = set(opaque)
    opaque_keys |= {snake_to_camel(k) for k in opaque_keys} | {
        camel_to_snake(k) for k in opaque_keys
    }

    def _walk(value: Any) -> Any:
        if isinstance(value, dict):
            converted = {}
            for key, item in value.items():
                new_key = convert(key) if isinstance(key, str) else key
                if key in opaque_keys:
                    converted[new_key] = item
                else:
                    converted[new_key] = _walk(item)
            return converted
        if isinstance(value, list):
            return [_walk(item) for item in value]
        return value

    return _walk(data)
