"""HCL loading engine — parse .hcl files into a Catalog of resources."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import hcl2
import jinja2

from .catalog import Catalog

logger = logging.getLogger(__name__)


def scan(
    path: str | Path,
    *,
    recurse: bool = True,
    context: dict[str, Any] | None = None,
) -> Catalog:
    """Scan a directory for .hcl files and return the declared resources."""
    root = Path(path)
    pattern = "**/*.hcl" if recurse else "*.hcl"
    catalog: Catalog = Catalog(context=context)
    for file in sorted(root.glob(pattern)):
        logger.debug("Loading %s", file)
        catalog.load(load(file, context=context))
    return catalog


def load(
    file: Path,
    *,
    context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Load and parse a single HCL file, rendering Jinja2 templates with context."""
    text = file.read_text()
    ctx = context if context is not None else {}
    env = jinja2.Environment(
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    try:
        template = env.from_string(text)
        text = template.render(ctx)
    except jinja2.TemplateError as exc:
        raise ValueError(f"{file}: {exc}") from exc
    return hcl2.loads(text)
