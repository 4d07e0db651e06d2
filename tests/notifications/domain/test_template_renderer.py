"""Tests for template rendering helpers and the compile cache."""

from datetime import datetime

import pytest
from notifications.template.renderer import (
    TemplateCache,
    format_currency,
    format_date,
    format_number,
    is_valid_template,
    lowercase,
    pluralize,
    render_compiled,
    uppercase,
)
from protean.exceptions import ValidationError


class TestHelpers:
    def test_format_date_default_pattern(self):
        assert format_date(datetime(2026, 2, 3)) == "02/03/2026"

    def test_format_date_parses_iso_strings(self):
        assert format_date("2026-02-03T10:00:00Z", "%Y-%m-%d") == "2026-02-03"

    def test_format_date_passes_through_garbage(self):
        assert format_date("next week") == "next week"
        assert format_date(None) == ""

    def test_format_currency(self):
        assert format_currency(1234.5) == "$1,234.50"
        assert format_currency(10, "EUR") == "€10.00"
        assert format_currency(-3) == "-$3.00"

    def test_format_number(self):
        assert format_number(1500) == "1,500"
        assert format_number(2.5, 2) == "2.50"

    def test_case_helpers(self):
        assert uppercase("high") == "HIGH"
        assert lowercase("HIGH") == "high"
        assert uppercase(None) == ""

    def test_pluralize(self):
        assert pluralize(1, "item") == "item"
        assert pluralize(3, "item") == "items"
        assert pluralize(0, "box", "boxes") == "boxes"


class TestTemplateCache:
    def test_compiles_once_per_key(self):
        cache = TemplateCache()
        first = cache.get_or_compile("tpl-1", "Order {{ orderNumber }}", "Body")
        second = cache.get_or_compile("tpl-1", "Order {{ orderNumber }}", "Body")
        assert first is second
        assert "tpl-1" in cache
        assert len(cache) == 1

    def test_recompiles_when_sources_change(self):
        cache = TemplateCache()
        first = cache.get_or_compile("tpl-1", "Old {{ a }}", "Body")
        second = cache.get_or_compile("tpl-1", "New {{ a }}", "Body")
        assert first is not second
        assert render_compiled(second, {"a": "x"})[0] == "New x"

    def test_invalidate_and_clear(self):
        cache = TemplateCache()
        cache.get_or_compile("a", "A", "A")
        cache.get_or_compile("b", "B", "B")
        cache.invalidate("a")
        assert "a" not in cache
        cache.clear()
        assert len(cache) == 0

    def test_syntax_error_raises_validation_error(self):
        cache = TemplateCache()
        with pytest.raises(ValidationError) as exc:
            cache.get_or_compile("bad", "{% if %}", "Body")
        assert "template" in exc.value.messages


class TestRendering:
    def test_rendering_is_deterministic(self):
        compiled = TemplateCache().get_or_compile(
            "tpl", "Order {{ orderNumber }}", "Total {{ total | format_currency }}"
        )
        data = {"orderNumber": "ORD-001", "total": 99}
        assert render_compiled(compiled, data) == render_compiled(compiled, data)
        assert render_compiled(compiled, data) == ("Order ORD-001", "Total $99.00")

    def test_conditionals_and_helper_functions(self):
        compiled = TemplateCache().get_or_compile(
            "tpl",
            "{% if quantity < reorder %}Low{% else %}OK{% endif %}",
            "{{ quantity }} {{ pluralize(quantity, 'unit') }}",
        )
        assert render_compiled(compiled, {"quantity": 1, "reorder": 5}) == ("Low", "1 unit")

    def test_missing_variables_render_empty(self):
        compiled = TemplateCache().get_or_compile("tpl", "Hello {{ name }}", "Body")
        assert render_compiled(compiled, {})[0] == "Hello"


class TestValidation:
    def test_valid_template(self):
        assert is_valid_template("Hello {{ name | uppercase }}") is True

    def test_invalid_template(self):
        assert is_valid_template("Hello {{ name ") is False
