from __future__ import annotations

from typing import Any

from jinja2 import DictLoader, StrictUndefined
from jinja2.sandbox import ImmutableSandboxedEnvironment

_LAYOUT = """<!doctype html>
<html>
<head><meta charset="utf-8"><title>{{ title }}</title></head>
<body>
<div class="wrap">
<h1>{{ title }}</h1>
{% block body %}{% endblock %}
</div>
</body>
</html>
"""

_OVERVIEW = """{% extends "layout.html" %}
{% block body %}
<p>This menu organizes the selected custom post types into one place.</p>
{% if groups %}
<pre style="background:#fff;padding:15px;border:1px solid #ccc;">
Custom Data
{% for group in groups %}    {{ group.label }}
{% for leaf in group.leaves %}        - {{ leaf.page_title }}
{% endfor %}{% endfor %}</pre>
{% else %}
<p>No post types are managed yet.{% if settings_url %} Choose some on the <a href="{{ settings_url }}">settings page</a>.{% endif %}</p>
{% endif %}
{% endblock %}
"""

_SETTINGS = """{% extends "layout.html" %}
{% block body %}
{% if error %}<div class="notice notice-error"><p>{{ error }}</p></div>{% endif %}
{% if saved %}<div class="notice notice-success"><p>Settings saved.</p></div>{% endif %}
<form method="post" action="{{ action_url }}">
<input type="hidden" name="_wpnonce" value="{{ nonce }}">
{% if choices %}
<table class="form-table">
{% for choice in choices %}
<tr><td><label><input type="checkbox" name="managed_types" value="{{ choice.slug }}"{% if choice.checked %} checked{% endif %}> {{ choice.label }} <code>{{ choice.slug }}</code></label></td></tr>
{% endfor %}
</table>
{% else %}
<p>No custom post types are registered.</p>
{% endif %}
<p><button type="submit" class="button button-primary">Save Changes</button></p>
</form>
{% endblock %}
"""

_FIELD_GROUPS = """{% extends "layout.html" %}
{% block body %}
<p>Quick access to all Secure Custom Fields / ACF field groups from one place.</p>
{% if groups %}
<table class="widefat striped" style="max-width: 900px; margin-top: 20px;">
<thead><tr><th>Field Group</th><th>Location</th><th>Actions</th></tr></thead>
<tbody>
{% for group in groups %}
<tr>
<td><strong>{{ group.title }}</strong><br><code>{{ group.key }}</code></td>
<td>{{ group.location }}</td>
<td><a class="button button-primary" href="{{ group.edit_url }}">Edit Field Group</a></td>
</tr>
{% endfor %}
</tbody>
</table>
{% else %}
<p>No field groups found.</p>
{% endif %}
{% endblock %}
"""

_TEMPLATES = {
    "layout.html": _LAYOUT,
    "overview.html": _OVERVIEW,
    "settings.html": _SETTINGS,
    "field_groups.html": _FIELD_GROUPS,
}

_ENV: ImmutableSandboxedEnvironment | None = None


def _env() -> ImmutableSandboxedEnvironment:
    global _ENV
    if _ENV is None:
        _ENV = ImmutableSandboxedEnvironment(
            loader=DictLoader(_TEMPLATES),
            autoescape=True,
            undefined=StrictUndefined,
        )
    return _ENV


def _sanitize_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(key): _sanitize_value(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(val) for val in value]
    return str(value)


def render_page(name: str, context: dict[str, Any]) -> str:
    """Render one of the admin pages; values reach the template as plain data only."""
    tmpl = _env().get_template(name)
    return tmpl.render(_sanitize_value(context or {}))
