"""package.json parsing."""

import json

from stackhumans.models.errors import InputError
from stackhumans.models.schemas import ParsedDependencies


def parse_package_json(content: str) -> ParsedDependencies:
    """Extract dependency names from package.json text.

    Raises:
        InputError: If the content is not a JSON object.
    """
    try:
        pkg = json.loads(content)
    except ValueError as e:
        raise InputError(f"package.json is not valid JSON: {e}") from e
    if not isinstance(pkg, dict):
        raise InputError("package.json must contain a JSON object")

    dependencies = _dependency_names(pkg, "dependencies")
    dev_dependencies = _dependency_names(pkg, "devDependencies")
    return ParsedDependencies(
        dependencies=dependencies,
        dev_dependencies=dev_dependencies,
        all=list(dict.fromkeys(dependencies + dev_dependencies)),
    )


def _dependency_names(pkg: dict, field: str) -> list[str]:
    section = pkg.get(field) or {}
    if not isinstance(section, dict):
        raise InputError(f"package.json '{field}' must be an object")
    return list(section.keys())


def manifest_fingerprint(names: list[str]) -> str:
    """Stable cache key for a set of package names."""
    return ",".join(sorted(set(names)))
