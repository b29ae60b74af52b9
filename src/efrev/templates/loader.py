"""Utilities for loading and rendering C# source templates."""

from functools import lru_cache
from pathlib import Path
from typing import Any
from efrev.config.logging import get_logger

logger = get_logger(__name__)

# Base directory for templates
TEMPLATES_DIR = Path(__file__).resolve().parent


@lru_cache(maxsize=None)
def load_template(name: str) -> str:
    """
    Load a template file from the templates directory.

    Args:
        name: File name relative to templates/, e.g., 'entity_class.txt'

    Returns:
        Template contents as string

    Raises:
        FileNotFoundError: If the template file doesn't exist
    """
    full_path = TEMPLATES_DIR / name
    if not full_path.exists():
        logger.error(f"Template file not found: {full_path}")
        raise FileNotFoundError(f"Template file not found: {full_path}")

    content = full_path.read_text(encoding="utf-8")
    logger.debug(f"Loaded template {name}")
    return content


def render_template(template: str, **kwargs: Any) -> str:
    """
    Render a template with str.format() placeholders.

    Literal C# braces are written doubled ({{ and }}) in the template files.

    Args:
        template: Template string with {placeholder} fields
        **kwargs: Values to fill placeholders

    Returns:
        Rendered source text
    """
    try:
        return template.format(**kwargs)
    except KeyError as e:
        logger.error(f"Missing placeholder in template: {e}")
        raise
