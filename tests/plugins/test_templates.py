# tests/plugins/test_templates.py
"""Tests for sandboxed output templates."""

import pytest


class TestOutputTemplate:
    def test_renders_top_level_keys(self) -> None:
        from keyward.plugins.templates import OutputTemplate

        template = OutputTemplate("{{ alias }} -> {{ account_id }}")

        assert template.render({"alias": "bob", "account_id": "0.0.5"}) == "bob -> 0.0.5"

    def test_non_mapping_output_bound_as_output(self) -> None:
        from keyward.plugins.templates import OutputTemplate

        assert OutputTemplate("{{ output | join(',') }}").render(["a", "b"]) == "a,b"

    def test_loops_keep_newlines(self) -> None:
        from keyward.plugins.templates import OutputTemplate

        template = OutputTemplate("{% for i in items %}{{ i }}\n{% endfor %}")

        assert template.render({"items": [1, 2]}) == "1\n2\n"

    def test_no_html_escaping(self) -> None:
        from keyward.plugins.templates import OutputTemplate

        assert OutputTemplate("{{ v }}").render({"v": "<a & b>"}) == "<a & b>"

    def test_syntax_error(self) -> None:
        from keyward.plugins.templates import OutputTemplate, TemplateError

        with pytest.raises(TemplateError, match="syntax"):
            OutputTemplate("{% if %}")

    def test_undefined_variable(self) -> None:
        from keyward.plugins.templates import OutputTemplate, TemplateError

        with pytest.raises(TemplateError, match="Undefined"):
            OutputTemplate("{{ missing }}").render({})

    def test_sandbox_blocks_attribute_escape(self) -> None:
        from keyward.plugins.templates import OutputTemplate, TemplateError

        template = OutputTemplate("{{ v.__class__.__mro__ }}")

        with pytest.raises(TemplateError):
            template.render({"v": "x"})
