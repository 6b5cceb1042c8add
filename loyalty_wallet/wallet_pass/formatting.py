# loyalty_wallet/wallet_pass/formatting.py

"""Locale-aware display formatting for pass fields."""

from datetime import date
from typing import Dict, Optional

DEFAULT_LOCALE = 'en-US'

_LOCALES: Dict[str, Dict[str, str]] = {
    'en-US': {'group': ',', 'decimal': '.', 'date': '%b %d, %Y'},
    'en-GB': {'group': ',', 'decimal': '.', 'date': '%d %b %Y'},
    'ko-KR': {'group': ',', 'decimal': '.', 'date': '%Y. %m. %d.'},
    'de-DE': {'group': '.', 'decimal': ',', 'date': '%d.%m.%Y'},
}

# symbol, fraction digits, symbol after amount
_CURRENCIES = {
    'KRW': ('₩', 0, False),
    'USD': ('$', 2, False),
    'GBP': ('£', 2, False),
    'EUR': ('€', 2, True),
    'JPY': ('¥', 0, False),
}


def resolve_locale(locale: Optional[str]) -> str:
    if not locale:
        return DEFAULT_LOCALE
    normalized = locale.replace('_', '-')
    if normalized in _LOCALES:
        return normalized
    language = normalized.split('-')[0].lower()
    for known in _LOCALES:
        if known.lower().startswith(language + '-'):
            return known
    return DEFAULT_LOCALE


def _group_digits(number: str, separator: str) -> str:
    head, digits = ('-', number[1:]) if number.startswith('-') else ('', number)
    groups = []
    while len(digits) > 3:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    groups.insert(0, digits)
    return head + separator.join(groups)


def format_number(value: float, locale: Optional[str] = None, decimals: int = 0) -> str:
    conventions = _LOCALES[resolve_locale(locale)]
    rendered = f'{abs(value):.{decimals}f}'
    whole, _, fraction = rendered.partition('.')
    if value < 0:
        whole = '-' + whole
    result = _group_digits(whole, conventions['group'])
    if fraction:
        result += conventions['decimal'] + fraction
    return result


def format_currency(amount: float, currency: str = 'KRW', locale: Optional[str] = None) -> str:
    """Format a money amount, e.g. 15000 KRW -> '₩15,000'."""
    symbol, decimals, trailing = _CURRENCIES.get(currency.upper(), (currency.upper() + ' ', 2, False))
    number = format_number(amount, locale, decimals)
    return f'{number} {symbol}' if trailing else f'{symbol}{number}'


def format_date(value: date, locale: Optional[str] = None) -> str:
    return value.strftime(_LOCALES[resolve_locale(locale)]['date'])


def format_percent(fraction: float) -> str:
    return f'{int(round(fraction * 100))}%'


def hex_to_rgb(hex_color: Optional[str], default: str = 'rgb(16, 185, 129)') -> str:
    """Convert '#10b981' to the 'rgb(r, g, b)' form Apple Wallet expects."""
    rgb = hex_to_tuple(hex_color)
    if rgb is None:
        return default
    return 'rgb({}, {}, {})'.format(*rgb)


def hex_to_tuple(hex_color: Optional[str]):
    if not hex_color:
        return None
    value = hex_color.lstrip('#')
    if len(value) != 6:
        return None
    try:
        return tuple(int(value[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return None
