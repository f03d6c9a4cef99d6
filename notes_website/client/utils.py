import html
from datetime import datetime, UTC


def time_now() -> datetime:
    """Return the current UTC time without microseconds."""
    return datetime.now(UTC).replace(microsecond=0)


def local_time(value: datetime) -> str:
    """Format a timestamp in the server's local time zone for display."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def escape(text) -> str:
    """Escape text before it is inserted into markup."""
    return html.escape("" if text is None else str(text), quote=True)
