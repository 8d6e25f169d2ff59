# src/keyward/plugins/templates.py
"""Jinja2 templates for human-readable command output."""

from typing import Any

from jinja2 import StrictUndefined, TemplateSyntaxError, UndefinedError
from jinja2.exceptions import SecurityError
from jinja2.sandbox import SandboxedEnvironment

from keyward.contracts.errors import KeywardError


class TemplateError(KeywardError):
    """Error in template compilation or rendering (including sandbox violations)."""


class OutputTemplate:
    """Sandboxed Jinja2 template rendered against a command's JSON output.

    The output object's top-level keys become template variables.

    Example:
        template = OutputTemplate("{{ alias }} -> {{ account_id }}")
        template.render({"alias": "bob", "account_id": "0.0.5"})
    """

    def __init__(self, template_string: str) -> None:
        """Compile template.

        Raises:
            TemplateError: If template syntax is invalid
        """
        self._env = SandboxedEnvironment(
            undefined=StrictUndefined,  # Raise on undefined variables
            autoescape=False,  # Terminal output, not HTML
        )
        try:
            self._template = self._env.from_string(template_string)
        except TemplateSyntaxError as e:
            raise TemplateError(f"Invalid template syntax: {e}") from e

    def render(self, output: Any) -> str:
        """Render with the command output.

        Raises:
            TemplateError: If rendering fails (undefined variable, sandbox violation, etc.)
        """
        variables = output if isinstance(output, dict) else {"output": output}
        try:
            return self._template.render(**variables)
        except UndefinedError as e:
            raise TemplateError(f"Undefined variable: {e}") from e
        except SecurityError as e:
            raise TemplateError(f"Sandbox violation: {e}") from e
