"""DAG template rendering with Jinja2."""

from typing import Any, Dict

from jinja2 import Environment, StrictUndefined, TemplateSyntaxError, UndefinedError

from src.pipeweaver.errors import TemplateFailure


class RenderError(TemplateFailure):
    """Raised when template rendering fails."""

    pass


class DagRenderer:
    """Renders DAG templates using Jinja2.

    Features:
    - StrictUndefined, so a missing variable fails instead of rendering blank
    - ``pystr`` filter emitting a Python string literal
    - all-or-nothing output: errors never return partially rendered text
    """

    def __init__(self) -> None:
        self.env = Environment(
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
        )
        self.env.filters["pystr"] = repr

    def render(self, template: str, variables: Dict[str, Any]) -> str:
        """Render template text with variables.

        Args:
            template: Template source (Jinja2 syntax).
            variables: Template variables.

        Returns:
            Rendered text.

        Raises:
            RenderError: If the template is malformed or rendering fails.
        """
        try:
            jinja_template = self.env.from_string(template)
            return jinja_template.render(**variables)

        except UndefinedError as e:
            raise RenderError(f"Missing variable in template: {e}") from e

        except TemplateSyntaxError as e:
            raise RenderError(f"Invalid template syntax at line {e.lineno}: {e}") from e

        except Exception as e:
            raise RenderError(f"Template rendering failed: {e}") from e
