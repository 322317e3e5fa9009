"""Helpers for presenting amounts stored as integer cents."""


def format_cents(amount: int | None, currency: str = "usd") -> str:
    if amount is None:
        return "-"
    symbol = "$" if currency.lower() == "usd" else ""
    text = f"{symbol}{amount // 100:,}.{amount % 100:02d}"
    return text if symbol else f"{text} {currency.upper()}"
