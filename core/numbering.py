"""Human-facing invoice numbers."""

NUMBER_WIDTH = 4


def format_invoice_number(prefix: str, number: int) -> str:
    """
    Format an allocated sequence number.

    Pads to four digits; larger numbers are printed in full.
    ("INV", 1) -> "INV-0001", ("PO", 123) -> "PO-0123", ("INV", 12345) -> "INV-12345"
    """
    if number < 1:
        raise ValueError(f"Invoice sequence numbers start at 1, got {number}")
    return f"{prefix}-{number:0{NUMBER_WIDTH}d}"
