"""Identifier casing and English pluralization helpers."""

import re

_VOWELS = set("aeiouAEIOU")
_SIBILANT_ENDINGS = ("s", "x", "z", "sh", "ch")


def to_pascal_case(identifier: str) -> str:
    """
    Convert an underscore-separated identifier to PascalCase.

    Only the first letter of each segment is changed; the rest keeps its
    casing ("order_item" -> "OrderItem", "user_ID" -> "UserID").
    """
    return "".join(segment[:1].upper() + segment[1:] for segment in identifier.split("_"))


def to_camel_case(identifier: str) -> str:
    pascal = to_pascal_case(identifier)
    return pascal[:1].lower() + pascal[1:]


def pluralize(word: str) -> str:
    """
    Pluralize an English noun with simple suffix rules.

    Not idempotent: pluralize("Orders") gives "Orderses".
    """
    if not word:
        return word
    lower = word.lower()
    if lower.endswith("y") and len(word) > 1 and word[-2] not in _VOWELS:
        return word[:-1] + "ies"
    if lower.endswith(_SIBILANT_ENDINGS):
        return word + "es"
    return word + "s"


def singularize(word: str) -> str:
    """Best-effort inverse of pluralize() for table names like "Categories"."""
    if not word:
        return word
    lower = word.lower()
    if lower.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if re.search(r"(ss|x|z|sh|ch)es$", lower):
        return word[:-2]
    if lower.endswith(("ss", "us", "is")):
        return word
    if lower.endswith("s") and len(word) > 1:
        return word[:-1]
    return word
