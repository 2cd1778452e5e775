import datetime
import re
import uuid

_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def new_id() -> str:
    return uuid.uuid4().hex


def is_valid_id(value) -> bool:
    return isinstance(value, str) and bool(_ID_PATTERN.match(value))


def utc_now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()
