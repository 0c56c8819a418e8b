# bot/utils/phones.py
import re
from typing import Optional

# +998901234567 | 998901234567 | 8901234567 | 901234567
UZ_MOBILE_REGEX = re.compile(r"^(\+998|998|8)?([0-9]{9})$")

_SEPARATORS = re.compile(r"[\s\-()]")


def strip_separators(raw: str) -> str:
    return _SEPARATORS.sub("", raw or "")


def normalize_uz_phone_strict(raw: str) -> Optional[str]:
    """
    User matnidan kelgan phone ni qat'iy normalize qiladi.
    Qabul qilinadigan formatlar:
      - +998 90 123-45-67
      - 998901234567
      - 8901234567
      - (90) 123 45 67

    QAYTARADI: +998XXXXXXXXX yoki None
    """
    match = UZ_MOBILE_REGEX.match(strip_separators(raw))
    if not match:
        return None
    return f"+998{match.group(2)}"
