# bot/utils/formatting.py
import html
from datetime import datetime


def format_price(amount: int | float | None) -> str:
    """30000 -> '30 000 so'm'"""
    value = int(amount or 0)
    return f"{value:,}".replace(",", " ") + " so'm"


def format_date(value: datetime | None) -> str:
    if value is None:
        return "-"
    return value.strftime("%d.%m.%Y %H:%M")


def esc(value) -> str:
    # Bot HTML parse_mode bilan ishlaydi
    return html.escape(str(value if value is not None else ""))
