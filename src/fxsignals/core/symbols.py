"""Currency pair symbol conversion.

Pairs are displayed as ``"EUR/USD"`` and accepted on the command line in
any of ``EUR/USD``, ``EUR-USD``, ``eurusd``.
"""

from __future__ import annotations

_SEPARATORS = ("/", "-", "_", " ")


def to_pair_symbol(base: str, target: str) -> str:
    """Join two ISO codes into a display symbol.

    >>> to_pair_symbol("eur", "usd")
    'EUR/USD'
    """
    return f"{base.upper().strip()}/{target.upper().strip()}"


def parse_pair_symbol(symbol: str) -> tuple[str, str]:
    """Split a symbol into ``(base, target)``.

    >>> parse_pair_symbol("EUR/USD")
    ('EUR', 'USD')
    >>> parse_pair_symbol("gbpjpy")
    ('GBP', 'JPY')

    Raises
    ------
    ValueError
        If the symbol is not two three-letter codes.
    """
    cleaned = symbol.strip().upper()
    for sep in _SEPARATORS:
        if sep in cleaned:
            base, _, target = cleaned.partition(sep)
            break
    else:
        base, target = cleaned[:3], cleaned[3:]
    base, target = base.strip(), target.strip()
    if len(base) != 3 or len(target) != 3 or not (base + target).isalpha():
        raise ValueError(f"not a currency pair symbol: {symbol!r}")
    return base, target
