"""Display helpers for FCFA amounts and percentages (French conventions)."""


def fmt_fr_number(amount: float, decimals: int = 0) -> str:
    us = f"{float(amount):,.{decimals}f}"
    return us.replace(",", " ").replace(".", ",")


def format_fcfa(amount: float) -> str:
    return f"{fmt_fr_number(amount, 0)} FCFA"


def format_percentage(value: float, decimals: int = 1) -> str:
    return f"{fmt_fr_number(value, decimals)}%"


def parse_amount(raw: str) -> float:
    """Parse an amount typed by a user: ``1 000 000``, ``1.000.000``, ``12,5``."""
    cleaned = (
        raw.strip()
        .replace("FCFA", "")
        .replace("fcfa", "")
        .replace("XOF", "")
        .replace("\u202f", "")
        .replace("\xa0", "")
        .replace(" ", "")
    )
    if cleaned == "":
        raise ValueError("Montant vide")
    if "," in cleaned:
        cleaned = cleaned.replace(".", "").replace(",", ".")
    elif cleaned.count(".") > 1 or (cleaned.count(".") == 1 and len(cleaned.split(".")[1]) == 3):
        cleaned = cleaned.replace(".", "")
    return float(cleaned)
