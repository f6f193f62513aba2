"""Spanish amount-in-words for payment receipts.

    >>> amount_to_words(1_000_000)
    'un millón'
    >>> amount_to_words(21_500.5)
    'veintiún mil quinientos con 50/100'
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

UNITS = (
    '', 'uno', 'dos', 'tres', 'cuatro', 'cinco', 'seis', 'siete', 'ocho', 'nueve',
    'diez', 'once', 'doce', 'trece', 'catorce', 'quince',
    'dieciséis', 'diecisiete', 'dieciocho', 'diecinueve',
)

TWENTIES = (
    'veinte', 'veintiuno', 'veintidós', 'veintitrés', 'veinticuatro', 'veinticinco',
    'veintiséis', 'veintisiete', 'veintiocho', 'veintinueve',
)

TENS = ('', '', 'veinte', 'treinta', 'cuarenta', 'cincuenta', 'sesenta', 'setenta', 'ochenta', 'noventa')

HUNDREDS = (
    '', 'ciento', 'doscientos', 'trescientos', 'cuatrocientos', 'quinientos',
    'seiscientos', 'setecientos', 'ochocientos', 'novecientos',
)


def _below_thousand(n):
    if n == 0:
        return ''
    if n == 100:
        return 'cien'
    hundreds, rest = divmod(n, 100)
    parts = [HUNDREDS[hundreds]] if hundreds else []
    if rest < 20:
        parts.append(UNITS[rest])
    elif rest < 30:
        parts.append(TWENTIES[rest - 20])
    else:
        tens, units = divmod(rest, 10)
        parts.append(TENS[tens] + (f' y {UNITS[units]}' if units else ''))
    return ' '.join(p for p in parts if p)


def _apocope(words):
    """``uno`` -> ``un`` (and ``veintiuno`` -> ``veintiún``) in front of a noun."""
    if words.endswith('veintiuno'):
        return words[:-len('veintiuno')] + 'veintiún'
    if words.endswith('uno'):
        return words[:-1]
    return words


def _thousands(n):
    thousands, rest = divmod(n, 1000)
    if thousands == 0:
        head = ''
    elif thousands == 1:
        head = 'mil'
    else:
        head = f'{_apocope(_below_thousand(thousands))} mil'
    tail = _below_thousand(rest)
    return ' '.join(p for p in (head, tail) if p)


def integer_to_words(n):
    if n == 0:
        return 'cero'
    millions, rest = divmod(n, 1_000_000)
    parts = []
    if millions == 1:
        parts.append('un millón')
    elif millions:
        parts.append(f'{_apocope(integer_to_words(millions))} millones')
    if rest:
        parts.append(_thousands(rest))
    return ' '.join(parts)


def amount_to_words(amount):
    """Spell ``amount``; cents are rounded to two digits and shown as ``con NN/100``.

    Returns ``''`` for values that are not finite numbers.
    """
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        return ''
    if not value.is_finite():
        return ''

    value = value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    negative = value < 0
    value = abs(value)
    whole = int(value)
    cents = int((value - whole) * 100)

    words = integer_to_words(whole)
    if negative and (whole or cents):
        words = f'menos {words}'
    if cents:
        words = f'{words} con {cents:02d}/100'
    return words
