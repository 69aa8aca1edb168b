"""Loading fixes from JSON files written by fix generators."""

from __future__ import annotations

import json
from pathlib import Path

import click

from safefix.core.models import Fix


def load_fixes(path: Path) -> list[Fix]:
    """Read one fix object or a list of fix objects from ``path``."""
    try:
        data = json.loads(path.read_text())
    except ValueError as e:
        raise click.BadParameter(f"{path} is not valid JSON: {e}") from e

    items = data if isinstance(data, list) else [data]
    fixes = []
    for index, item in enumerate(items):
        try:
            fixes.append(Fix.from_dict(item))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise click.BadParameter(f"{path}: fix #{index + 1} is malformed ({e})") from e
    return fixes
