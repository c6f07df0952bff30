"""
Template rendering helpers for HTML representations.

Resources that implement ``html(request)`` usually build their markup from a
Jinja2 template. A template that fails to render is a programming error, so
these helpers raise ``TemplateRenderError`` instead of producing an error
response.
"""

from typing import Any, Dict, Mapping, Optional

from jinja2 import DictLoader, Environment, StrictUndefined, Template, TemplateError, select_autoescape

from .exceptions import TemplateRenderError


def _template_context(data: Any) -> Dict[str, Any]:
    # Mappings become the template variables; anything else is available as ``data``
    if isinstance(data, Mapping):
        return dict(data)
    return {"data": data}


def must_render_html(template: Template, data: Any) -> str:
    """
    Render a pre-parsed template with ``data``.

    Examples:
        tmpl = Environment().from_string("<li>{{ data.name }}</li>")
        must_render_html(tmpl, widget)

    Raises:
        TemplateRenderError: If rendering fails
    """
    try:
        return template.render(**_template_context(data))
    except TemplateError as e:
        raise TemplateRenderError(f"Failed to render template '{template.name}': {e}", e) from e


def must_render_html_map(
    templates: Dict[str, str],
    name: str,
    data: Any,
    environment: Optional[Environment] = None,
) -> str:
    """
    Load a set of named template sources and render the entry point ``name``.

    Templates in the map can ``include`` or ``extend`` each other by name.
    Pass ``environment`` to make its filters and globals available; its
    loader is replaced by the map. Undefined variables are errors.

    Examples:
        templates = {
            "page": "<ul>{% for w in items %}{% include 'row' %}{% endfor %}</ul>",
            "row": "<li>{{ w.name }}</li>",
        }
        must_render_html_map(templates, "page", {"items": widgets})

    Raises:
        TemplateRenderError: If a template cannot be parsed, is missing or fails to render
    """
    loader = DictLoader(dict(templates))
    if environment is None:
        env = Environment(  # nosec B701
            loader=loader,
            autoescape=select_autoescape(default_for_string=True, default=True),
            undefined=StrictUndefined,
        )
    else:
        env = environment.overlay(loader=loader, undefined=StrictUndefined)

    try:
        return env.get_template(name).render(**_template_context(data))
    except TemplateError as e:
        raise TemplateRenderError(f"Failed to render template '{name}': {e}", e) from e
