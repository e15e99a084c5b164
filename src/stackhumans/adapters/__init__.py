"""Package registry adapters."""

from stackhumans.adapters.base import BaseAdapter, parse_repo_url
from stackhumans.adapters.manifest import manifest_fingerprint, parse_package_json
from stackhumans.adapters.npm import NpmAdapter, is_type_definition

__all__ = [
    "BaseAdapter",
    "NpmAdapter",
    "is_type_definition",
    "manifest_fingerprint",
    "parse_package_json",
    "parse_repo_url",
]
