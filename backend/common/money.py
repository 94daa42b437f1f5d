from decimal import Decimal

CENTS = Decimal("0.01")


def money_str(value) -> str:
    """Two-decimal string for an amount or a `Sum` aggregate (None -> "0.00")."""
    return str(Decimal(value or 0).quantize(CENTS))
