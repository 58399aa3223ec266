import re

_UNITS = {"s": 1, "m": 60, "h": 3600}


def parse_duration(value: str | int | float) -> float:
    """
    Parse a duration like '15s', '10m', '1h' or a bare number of seconds.
    """
    if isinstance(value, bool):
        raise ValueError("Invalid duration format")
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        raise ValueError("Invalid duration format")

    match = re.fullmatch(r"\s*(\d+(?:\.\d+)?)\s*([smh]?)\s*", value)
    if not match:
        raise ValueError(f"Invalid duration format: {value!r}")

    amount, unit = match.groups()
    return float(amount) * _UNITS[unit or "s"]
