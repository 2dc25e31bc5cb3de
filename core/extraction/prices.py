"""Price normalization shared by both extraction strategies.

Prices on the supported sites are written with a currency prefix and dots
as thousand separators (``Rp1.249.000``). Rendered cards frequently glue a
discounted price, the original price and a discount label into a single
text node (``Rp58.05061.0505% Diskon 50%``), so the token scanner enforces
the three-digit grouping rule to cut such runs at the first price.
"""

from typing import Optional

DEFAULT_CURRENCY_PREFIX = "Rp"
GROUP_SIZE = 3
ASCII_DIGITS = "0123456789"


def format_price(amount: int, prefix: str = DEFAULT_CURRENCY_PREFIX) -> str:
    """Format an amount with dot grouping, e.g. ``60270`` -> ``Rp60.270``."""
    if amount < 0:
        raise ValueError(f"Price cannot be negative: {amount}")
    return prefix + f"{amount:,}".replace(",", ".")


def zero_price(prefix: str = DEFAULT_CURRENCY_PREFIX) -> str:
    return format_price(0, prefix)


def scan_price_amount(text: str, prefix: str = DEFAULT_CURRENCY_PREFIX) -> Optional[int]:
    """Read the leading price token of a text and return its integer amount.

    The currency prefix is optional and whitespace right after it is skipped.
    Digits accumulate until the token breaks:

    - a dot is accepted only after at least one digit, and only when no dot
      has been seen yet or the group before it has exactly three digits;
    - once a dot has been consumed, a fourth digit in the same group ends
      the token, so concatenated prices stop at the first one;
    - any other character ends the token.

    Args:
        text: Raw text, typically a rendered price label
        prefix: Currency prefix to strip from the start of the text

    Returns:
        The amount as an integer, or None when the token holds no digits
    """
    body = text.strip()
    if prefix and body.startswith(prefix):
        body = body[len(prefix):].lstrip()

    digits = []
    seen_separator = False
    group_length = 0
    for char in body:
        if char in ASCII_DIGITS:
            if seen_separator and group_length == GROUP_SIZE:
                break
            digits.append(char)
            group_length += 1
        elif char == ".":
            if not digits:
                break
            if seen_separator and group_length != GROUP_SIZE:
                break
            seen_separator = True
            group_length = 0
        else:
            break

    if not digits:
        return None
    return int("".join(digits))


def parse_price_token(text: str, prefix: str = DEFAULT_CURRENCY_PREFIX) -> str:
    """Normalize a price token to its canonical string.

    Returns the canonical zero price when the text holds no usable digits.

    >>> parse_price_token("Rp58.05061.0505% Diskon 50%")
    'Rp58.050'
    """
    amount = scan_price_amount(text, prefix)
    return format_price(amount if amount is not None else 0, prefix)


def parse_plain_amount(text: str, prefix: str = DEFAULT_CURRENCY_PREFIX) -> Optional[int]:
    """Parse a price element whose whole text is a single amount.

    Used for dedicated price elements (``<span>Rp</span><span>60.270</span>``)
    where every separator can be dropped safely.
    """
    cleaned = text.replace(prefix, "") if prefix else text
    cleaned = "".join(cleaned.replace(".", "").replace(",", "").split())
    if not cleaned or any(char not in ASCII_DIGITS for char in cleaned):
        return None
    return int(cleaned)
