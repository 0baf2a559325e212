"""
Cache key construction and resource-name matching.

A cache key is the resource name, optionally followed by ``~`` and the
alphabetized ``field=value`` pairs that tell instances apart, joined by ``_``:

    user
    user~userId=zorah
    search~page=2_query=solar
"""

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

KEY_SEPARATOR = "~"
FIELD_SEPARATOR = "_"

Dependency = Union[str, Callable[[Dict[str, Any]], Mapping[str, Any]]]


def _field_string(name: str, value: Any) -> str:
    return f"{name}={value}" if value else ""


def build_cache_key(
    resource_name: str,
    dependencies: Iterable[Dependency] = (),
    *,
    path: Optional[Dict[str, Any]] = None,
    data: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, Any]] = None,
) -> str:
    """Build the cache key for one instance of ``resource_name``.

    Each dependency is either a field name, looked up in ``path`` then ``data``
    then ``params``, or a callable that receives ``params`` and returns a
    mapping of fields. Falsy values do not contribute to the key.
    """
    path = path or {}
    data = data or {}
    params = params or {}
    fields: List[str] = []

    for dependency in dependencies:
        if callable(dependency):
            pairs = (_field_string(name, value) for name, value in dependency(params).items())
            joined = FIELD_SEPARATOR.join(pair for pair in pairs if pair)
        else:
            value = path.get(dependency) or data.get(dependency) or params.get(dependency)
            joined = _field_string(dependency, value)

        if joined:
            fields.append(joined)

    if not fields:
        return resource_name
    return f"{resource_name}{KEY_SEPARATOR}{FIELD_SEPARATOR.join(sorted(fields))}"


def resource_name_from_key(key: str) -> str:
    """Recover the resource name a key was built from."""
    return key.split(KEY_SEPARATOR, 1)[0]


def matches_resource(key: str, resource_name: str) -> bool:
    """True when ``key`` is ``resource_name`` itself or one of its instances.

    ``"user"`` matches ``"user"`` and ``"user~userId=zorah"`` but not
    ``"users"``.
    """
    return key == resource_name or key.startswith(f"{resource_name}{KEY_SEPARATOR}")
