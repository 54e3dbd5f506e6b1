import re
import unicodedata
from decimal import Decimal

NUMBER_PATTERN = re.compile(r"(\d+(?:[.,]\d+)?)")


def first_number(text: str) -> Decimal | None:
    """First decimal number in `text`, accepting `.` or `,` as separator."""
    match = NUMBER_PATTERN.search(text or "")
    if not match:
        return None
    return Decimal(match.group(1).replace(",", "."))


def fold(text: str) -> str:
    """Lowercase and strip accents so "Relatório" matches "relatorio"."""
    normalized = unicodedata.normalize("NFKD", text or "")
    return "".join(ch for ch in normalized if not unicodedata.combining(ch)).lower()
