import re
from typing import Any, Dict, Optional, Union

from .constants import DEFAULT_COLLECTION_SIZE, SIZE_UNITS
from .errors import InvalidSize

_SIZE_PATTERN = re.compile(r"^\s*(?P<magnitude>\d+(?:\.\d+)?)\s*(?P<unit>[a-z]*)\s*$", re.IGNORECASE)


def parse_size(value: Optional[Union[int, str]] = None) -> int:
    """
    Convert a capacity such as 7340032, "7MB" or "1.5 kb" into a byte count.

    Units are powers of 1024; a bare number is a byte count. None falls back
    to DEFAULT_COLLECTION_SIZE.
    """
    if value is None:
        value = DEFAULT_COLLECTION_SIZE

    # bool is an int subclass but never a size
    if isinstance(value, bool):
        raise InvalidSize(f"Invalid collection size: {value!r}.")

    if isinstance(value, int):
        size = value
    elif isinstance(value, str):
        match = _SIZE_PATTERN.match(value)
        if match is None:
            raise InvalidSize(f"Invalid collection size: {value!r}.")
        unit = match.group("unit").lower() or "b"
        if unit not in SIZE_UNITS:
            raise InvalidSize(f"Invalid collection size unit: {unit!r}.")
        size = int(float(match.group("magnitude")) * SIZE_UNITS[unit])
    else:
        raise InvalidSize(f"Invalid collection size: {value!r}.")

    if size <= 0:
        raise InvalidSize(f"Collection size must be positive, got {value!r}.")
    return size


# Messages are stored as plain dicts
def make_message(event: str, data: Any = None) -> Dict[str, Any]:
    return {"event": event, "data": data}
