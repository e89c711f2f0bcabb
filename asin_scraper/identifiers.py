import logging
import re
from pathlib import Path

from .errors import FatalError

logger = logging.getLogger(__name__)

ASIN_PATTERN = re.compile(r"^[A-Za-z0-9]{10}$")


def load_identifiers(path: str | Path, validate: bool = True, dedupe: bool = True) -> list[str]:
    """
    Read a line-delimited identifier file.

    Lines are trimmed and blank lines dropped. With `validate`, tokens that
    are not ASIN-shaped (10 alphanumerics) are skipped with a warning. With
    `dedupe`, only the first occurrence of each token is kept.

    Raises FatalError if the file cannot be read.
    """
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8")
    except OSError as e:
        raise FatalError(f"cannot read identifier file {p}: {e}") from e

    identifiers: list[str] = []
    seen: set[str] = set()
    for line_no, line in enumerate(raw.splitlines(), start=1):
        token = line.strip()
        if not token:
            continue
        if validate and not ASIN_PATTERN.match(token):
            logger.warning("Skipping invalid identifier on line %d: %r", line_no, token)
            continue
        if dedupe:
            if token in seen:
                continue
            seen.add(token)
        identifiers.append(token)
    return identifiers
