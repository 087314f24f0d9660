"""
Salary range parsing and rendering.

Handles card lines such as ``"NGN 150,000 - 250,000"`` as well as structured
``baseSalary`` objects from JobPosting data.
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

HOME_CURRENCY = 'NGN'

CURRENCY_SYMBOLS = {
    '₦': 'NGN',
    '$': 'USD',
    '€': 'EUR',
    '£': 'GBP',
}

# ISO codes accepted in salary text; other three-letter words (company tickers, acronyms) are not currencies
CURRENCY_CODES = ['NGN', 'USD', 'EUR', 'GBP', 'GHS', 'KES', 'ZAR', 'CAD', 'AUD']
_CODE = '(?:' + '|'.join(CURRENCY_CODES) + ')'

_AMOUNT = r'(?:\d{1,3}(?:,\d{3})+|\d{3,})(?:\.\d+)?'

# Strict form used to recognise a salary line on a card: a code is required
SALARY_LINE_RE = re.compile(
    rf'\b(?P<cur>{_CODE})\s*(?P<min>{_AMOUNT})'
    rf'(?:\s*[-–]\s*(?:(?P<cur2>{_CODE})\s*)?(?P<max>{_AMOUNT}))?'
)

# Lenient form for free text: code or symbol optional
_LENIENT_RE = re.compile(
    rf'(?:(?P<cur>\b{_CODE}\b|[₦$€£])\s*)?(?P<min>{_AMOUNT})'
    rf'(?:\s*[-–]\s*(?:(?:{_CODE}|[₦$€£])\s*)?(?P<max>{_AMOUNT}))?'
)


@dataclass(frozen=True)
class SalaryRange:
    currency_code: str
    min_amount: float
    max_amount: Optional[float] = None

    def render(self) -> str:
        """``"NGN 150,000 - NGN 250,000"`` or ``"NGN 80,000"``."""
        low = f"{self.currency_code} {_format_amount(self.min_amount)}"
        if self.max_amount is None or self.max_amount == self.min_amount:
            return low
        return f"{low} - {self.currency_code} {_format_amount(self.max_amount)}"


def _format_amount(amount: float) -> str:
    if float(amount).is_integer():
        return f"{int(amount):,}"
    return f"{amount:,.2f}"


def _to_amount(raw: str) -> Optional[float]:
    try:
        value = float(raw.replace(',', ''))
    except (TypeError, ValueError):
        return None
    return int(value) if value.is_integer() else value


def _build(currency: Optional[str], low: str, high: Optional[str],
           default_currency: str) -> Optional[SalaryRange]:
    min_amount = _to_amount(low)
    if min_amount is None:
        return None
    max_amount = _to_amount(high) if high else None
    if max_amount is not None and max_amount < min_amount:
        min_amount, max_amount = max_amount, min_amount
    code = CURRENCY_SYMBOLS.get(currency, currency) if currency else default_currency
    return SalaryRange(code.upper(), min_amount, max_amount)


def is_salary_line(line: str) -> bool:
    return bool(SALARY_LINE_RE.search(line or ''))


def parse_salary_line(line: str, default_currency: str = HOME_CURRENCY) -> Optional[SalaryRange]:
    """Parse a card line of the form ``<CODE> <amount>[ - <CODE>? <amount>]``."""
    match = SALARY_LINE_RE.search(line or '')
    if not match:
        return None
    return _build(match.group('cur'), match.group('min'), match.group('max'), default_currency)


def parse_salary(text: str, default_currency: str = HOME_CURRENCY) -> Optional[SalaryRange]:
    """
    Parse salary text where the currency may be a symbol or missing entirely.

    Missing currency falls back to ``default_currency``. Amounts need at least
    three digits so "2 years" style noise is not read as a salary.
    """
    if not text:
        return None
    strict = parse_salary_line(text, default_currency)
    if strict:
        return strict
    match = _LENIENT_RE.search(text)
    if match:
        return _build(match.group('cur'), match.group('min'), match.group('max'), default_currency)
    return None


def salary_from_structured(base_salary: Any, default_currency: str = HOME_CURRENCY) -> Optional[SalaryRange]:
    """Read a schema.org ``baseSalary`` (MonetaryAmount) value."""
    if isinstance(base_salary, (int, float, str)):
        return parse_salary(str(base_salary), default_currency)
    if not isinstance(base_salary, dict):
        return None
    currency = base_salary.get('currency') or default_currency
    value = base_salary.get('value')
    low = high = None
    if isinstance(value, dict):
        low = value.get('minValue', value.get('value'))
        high = value.get('maxValue')
    elif value is not None:
        low = value
    if low is None and high is None:
        return None
    if low is None:
        low, high = high, None
    return _build(str(currency), str(low), str(high) if high is not None else None, default_currency)


def render_salary(text: str, default_currency: str = HOME_CURRENCY) -> str:
    """Rendered range if ``text`` parses, else ``text`` unchanged."""
    parsed = parse_salary(text, default_currency)
    return parsed.render() if parsed else text


def salary_to_dict(salary: SalaryRange) -> Dict[str, Any]:
    return {'currency': salary.currency_code, 'min': salary.min_amount, 'max': salary.max_amount}
