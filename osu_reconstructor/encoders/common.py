"""Shared helpers for the osu! text encoders."""

LINE_ENDING = "\r\n"


def fmt_number(value: float | int | None) -> str:
    """Format a number the way osu! files store it.

    Integral values drop the decimal part; other floats use the shortest
    representation that round-trips.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def fmt_bool(value: bool) -> str:
    return "1" if value else "0"


def join_lines(lines: list[str]) -> str:
    return LINE_ENDING.join(lines) + LINE_ENDING
