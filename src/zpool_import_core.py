# --- START OF FILE zpool_import_core.py ---
"""
Entry points for turning captured `zpool import` stdout into Pool values.

Callers own running the command: choosing the executable, capturing stdout
as text and mapping a failed run or a missing binary to their own errors.
These functions only see text that was believed to be a successful capture.
"""

from typing import Iterator

from models import Advisory, Importable, NotImportable, Pool
from parsers.zpool_import import Rule, parse
from parsers.zpool_import_builder import ZpoolImportBuilder
from zfs_errors import ZfsError, ZfsParsingError, ZfsConsistencyError

__all__ = [
    "parse_zpool_import", "parse_zpools_import", "classify_advisory",
    "ZfsError", "ZfsParsingError", "ZfsConsistencyError",
]


def parse_zpool_import(text: str) -> Pool:
    """
    Parses the listing of exactly one importable pool.

    Raises:
        ZfsParsingError: text does not match the pool block grammar.
        ZfsConsistencyError: a matched value could not be converted.
    """
    tree = parse(text, Rule.ZPOOL_IMPORT)
    return ZpoolImportBuilder.build_pool(tree)


def parse_zpools_import(text: str) -> Iterator[Pool]:
    """
    Parses a listing of zero or more importable pools.

    The whole document is checked against the grammar before this returns, so
    syntax errors raise here. The result is a one-shot iterator that builds
    each Pool when pulled, in document order; iterating again needs a new
    call. An empty listing yields nothing.
    """
    tree = parse(text, Rule.ZPOOLS_IMPORT)
    return ZpoolImportBuilder.iter_pools(tree)


def classify_advisory(text: str) -> Advisory:
    """
    Classifies an `action:` body as importable or not.

    Wrapped lines are joined first. Raises ZfsParsingError when the text
    contains none of the known phrases; there is no default outcome.
    """
    if not isinstance(text, str):
        raise TypeError(f"Expected str, got {type(text).__name__}")
    message = " ".join(text.split())
    tree = parse(message, Rule.ACTION_MSG)
    classified = tree.children[0]
    if classified.rule is Rule.ACTION_BAD_MSG:
        return NotImportable(message)
    if classified.rule is Rule.ACTION_GOOD_MSG:
        return Importable(message)
    raise ZfsConsistencyError("Advisory matched no classification.", rule=classified.rule.value,
                              raw_value=message)

# --- END OF FILE zpool_import_core.py ---
