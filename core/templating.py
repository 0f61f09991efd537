import os
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, select_autoescape


# Jinja2 environment shared by email bodies and payment pages
templates_env = Environment(
    loader=FileSystemLoader(searchpath=os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")),
    autoescape=select_autoescape(["html", "xml"]),
)


def render_template(template_path: str, context: Dict[str, Any]) -> str:
    """Render a template from templates/ directory with provided context."""
    template = templates_env.get_template(template_path)
    return template.render(**context)
