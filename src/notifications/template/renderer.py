"""Template rendering — sandboxed Jinja2 with a compile cache keyed by template id.

Templates use ``{{ variable }}`` interpolation, ``{% if a > b %}`` style
conditionals and these filters (also callable as functions):

    format_date, format_currency, format_number, uppercase, lowercase, pluralize
"""

import threading
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import NamedTuple

from jinja2 import TemplateError, TemplateSyntaxError
from jinja2.sandbox import SandboxedEnvironment
from protean.exceptions import ValidationError


def _to_datetime(value):
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000 if value > 10**11 else value)
    return None


def format_date(value, fmt="%m/%d/%Y"):
    parsed = _to_datetime(value)
    if parsed is None:
        return "" if value is None else str(value)
    return parsed.strftime(fmt)


def _to_decimal(value):
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def format_currency(value, currency="USD"):
    amount = _to_decimal(value)
    if amount is None:
        return "" if value is None else str(value)
    symbol = {"USD": "$", "EUR": "€", "GBP": "£"}.get(currency.upper(), f"{currency.upper()} ")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_number(value, decimals=None):
    number = _to_decimal(value)
    if number is None:
        return "" if value is None else str(value)
    if decimals is None:
        return f"{number:,.0f}" if number == number.to_integral_value() else f"{number:,}"
    return f"{number:,.{decimals}f}"


def uppercase(value):
    return str(value).upper() if value else ""


def lowercase(value):
    return str(value).lower() if value else ""


def pluralize(count, singular, plural=None):
    plural = plural or f"{singular}s"
    try:
        return singular if int(count) == 1 else plural
    except (TypeError, ValueError):
        return plural


HELPERS = {
    "format_date": format_date,
    "format_currency": format_currency,
    "format_number": format_number,
    "uppercase": uppercase,
    "lowercase": lowercase,
    "pluralize": pluralize,
}


def build_environment() -> SandboxedEnvironment:
    env = SandboxedEnvironment(autoescape=False, keep_trailing_newline=False)
    env.filters.update(HELPERS)
    env.globals.update(HELPERS)
    return env


class CompiledTemplate(NamedTuple):
    subject_source: str
    body_source: str
    subject: object
    body: object


class TemplateCache:
    """Compiled subject/body pairs keyed by template id.

    Entries are immutable tuples swapped in whole, so a reader sees either
    the previous pair or the new one. An entry whose sources no longer match
    is recompiled even if nobody invalidated it.
    """

    def __init__(self, env: SandboxedEnvironment | None = None):
        self.env = env or build_environment()
        self._entries: dict[str, CompiledTemplate] = {}
        self._lock = threading.Lock()

    def get_or_compile(self, key: str, subject: str, body: str) -> CompiledTemplate:
        entry = self._entries.get(key)
        if entry is not None and entry.subject_source == subject and entry.body_source == body:
            return entry

        try:
            compiled = CompiledTemplate(subject, body, self.env.from_string(subject), self.env.from_string(body))
        except TemplateSyntaxError as e:
            raise ValidationError({"template": [f"Template syntax error: {e.message}"]}) from e

        with self._lock:
            self._entries[key] = compiled
        return compiled

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


template_cache = TemplateCache()


def render_compiled(compiled: CompiledTemplate, data: dict) -> tuple[str, str]:
    try:
        return compiled.subject.render(data).strip(), compiled.body.render(data).strip()
    except (TemplateError, TypeError, ValueError) as e:
        raise ValidationError({"template": [f"Template rendering failed: {e}"]}) from e


def is_valid_template(source: str, env: SandboxedEnvironment | None = None) -> bool:
    """Parse ``source`` without rendering it."""
    try:
        (env or template_cache.env).parse(source)
    except TemplateSyntaxError:
        return False
    return True
