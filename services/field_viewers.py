"""
Rendering-time viewer hooks for built-in field types.

Each viewer is registered on ``view_field_{type_key}`` and called as
``viewer(rendered_output, field, form)``; it returns the new output.
"""

from collections.abc import Iterable
from typing import Any

from jinja2 import Environment

from schemas.form import Form, FormField

template_env = Environment(autoescape=True)

FILE_LIST_TEMPLATE = template_env.from_string(
    "{% for url in urls %}"
    '<a href="{{ url }}" target="_blank">{{ url.rsplit("/", 1)[-1] }}</a>'
    "{% if not loop.last %}, {% endif %}"
    "{% endfor %}"
)

STAR_RATING_TEMPLATE = template_env.from_string(
    '<span class="star-rating" title="{{ value }}/{{ number }}" style="color: {{ color }};">'
    "{{ filled }}{{ empty }}"
    "</span>"
)


def _as_list(value: Any) -> list:
    if value is None or value == "":
        return []
    if isinstance(value, dict):
        return list(value.values())
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def _option_labels(field: FormField) -> dict[str, str]:
    labels = {}
    for option in (field.config.get("option") or {}).values():
        if not isinstance(option, dict):
            continue
        value = option.get("value", option.get("label"))
        if value is None:
            continue
        labels[str(value)] = str(option.get("label", value))
    return labels


def filter_options_calculator(rendered_output: Any, field: FormField, form: Form) -> Any:
    """Show option labels in place of stored option values"""
    labels = _option_labels(field)
    if not labels:
        return rendered_output

    values = _as_list(rendered_output)
    shown = [labels.get(str(value), str(value)) for value in values]
    if isinstance(rendered_output, (list, tuple, set, dict)):
        return ", ".join(shown)
    return shown[0] if shown else rendered_output


def handle_file_view(rendered_output: Any, field: FormField, form: Form) -> Any:
    urls: Iterable[str] = [str(url) for url in _as_list(rendered_output) if url]
    if not urls:
        return rendered_output
    return FILE_LIST_TEMPLATE.render(urls=urls)


def star_rating_viewer(rendered_output: Any, field: FormField, form: Form) -> Any:
    try:
        value = int(float(rendered_output))
    except (TypeError, ValueError):
        return rendered_output

    number = int(field.config.get("number", 5))
    value = max(0, min(value, number))
    return STAR_RATING_TEMPLATE.render(
        value=value,
        number=number,
        color=field.config.get("color", "#FFAA00"),
        filled="★" * value,
        empty="☆" * (number - value),
    )
