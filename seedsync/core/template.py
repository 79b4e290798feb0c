"""
Templating of seed files.

Seed files are Jinja2 templates of YAML. An optional top section, split from
the rest by a ``---`` line, declares a ``data`` mapping that the template
section renders with::

    data:
      authors: [tolkien, lewis]

    ---

    entities:
    {% for author in authors %}
      - Author: {$id: "{{ author }}", name: "{{ author | title }}"}
    {% endfor %}

Separately, ``render_meta`` substitutes the handful of entry-level names
allowed inside values, e.g. ``$id: "{table}-1"``.
"""

import re
from datetime import date
from typing import Any, Callable, Dict, Mapping, Optional

import jinja2
import yaml

from seedsync.core.values import iso_timestamp
from seedsync.exceptions import InvalidSeed

Helpers = Mapping[str, Callable[..., Any]]

_REFERENCE = re.compile(r"\{\s*([\w.]+)\s*\}")
_SECTION_BREAK = re.compile(r"\s---\n")
_COMMENT_LINE = re.compile(r"^\s*#.*$", re.MULTILINE)


def render_meta(value: str, context: Mapping[str, Any]) -> str:
    """
    Render ``{name}`` references in a string.

    Unknown names render as an empty string. Strings without a ``{`` are
    returned untouched.
    """
    # fast path, most values won't use this
    if "{" not in value:
        return value

    def _replace(match: "re.Match[str]") -> str:
        found = context.get(match.group(1))
        return "" if found is None else str(found)

    return _REFERENCE.sub(_replace, value)


def _template_safe(value: Any) -> Any:
    """YAML dates render as ISO strings."""
    if isinstance(value, date):
        return iso_timestamp(value)
    if isinstance(value, dict):
        return {key: _template_safe(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_template_safe(item) for item in value]
    return value


def render_template(
    contents: str,
    data: Mapping[str, Any],
    helpers: Optional[Helpers] = None,
) -> str:
    """
    Render one section of a seed file.

    YAML comment lines are dropped first, so they may contain anything.
    Undefined names render as an empty string.

    Raises:
        InvalidSeed: if the template cannot be rendered
    """
    environment = jinja2.Environment(keep_trailing_newline=True)
    environment.globals.update(helpers or {})

    try:
        template = environment.from_string(_COMMENT_LINE.sub("", contents))
        return template.render(_template_safe(dict(data)))
    except jinja2.TemplateError as e:
        raise InvalidSeed(f"Could not render seed template: {e}") from e


def _load_yaml(contents: str) -> Any:
    try:
        return yaml.safe_load(contents)
    except yaml.YAMLError as e:
        raise InvalidSeed(f"Could not parse seed YAML: {e}") from e


def render_seed(contents: str, helpers: Optional[Helpers] = None) -> Dict[str, Any]:
    """
    Render the text of a seed file into its raw mapping.

    Args:
        contents: Text of the seed file
        helpers: Functions available to the template

    Returns:
        The rendered seed file, ready for validation

    Raises:
        InvalidSeed: on a malformed file, or a ``data`` key without a
            ``---`` separator
    """
    sections = _SECTION_BREAK.split(contents)

    if len(sections) == 2:
        top_section, template_section = sections
    elif len(sections) == 1:
        top_section, template_section = None, sections[0]
    else:
        raise InvalidSeed("Including too many --- breaks")

    data: Dict[str, Any] = {}
    seed: Dict[str, Any] = {}

    if top_section:
        props = _load_yaml(render_template(top_section, {}, helpers))

        if props is not None:
            if not isinstance(props, dict):
                raise InvalidSeed("Top section of YAML file was not an object")

            template_data = props.pop("data", None) or {}
            if not isinstance(template_data, dict):
                raise InvalidSeed("The data key of a seed file must be an object")

            data.update(template_data)
            seed.update(props)

    rendered = _load_yaml(render_template(template_section, data, helpers))

    if rendered is not None:
        if not isinstance(rendered, dict):
            raise InvalidSeed("Seed file was not an object")

        seed.update(rendered)

    if "data" in seed:
        raise InvalidSeed("Seed included a 'data' key, but did not use a --- separator")

    return seed
