import re
from app.config import settings

_DIGITS_RE = re.compile(r"[0-9]+")


def normalize(raw: str, prefix: str | None = None, width: int | None = None) -> str:
    """Turn a scanned or typed token into a device-code lookup key.

    ``"8"`` becomes ``"CHR008"``, ``"chr012"`` becomes ``"CHR012"``. Anything
    else (serial numbers, patrimony tags) is only trimmed.
    """
    prefix = settings.DEVICE_CODE_PREFIX if prefix is None else prefix
    width = settings.DEVICE_CODE_WIDTH if width is None else width
    token = raw.strip()
    if _DIGITS_RE.fullmatch(token):
        return f"{prefix}{token.zfill(width)}".upper()
    if prefix and token.upper().startswith(prefix.upper()):
        return token.upper()
    return token
