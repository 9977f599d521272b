# --- START OF FILE parsers/zpool_import_builder.py ---
"""
Builds `Pool` values from `zpool import` syntax trees.
"""

from pathlib import PurePosixPath
from typing import Any, Callable, Dict, Iterator, Optional
from urllib.parse import urlsplit

import constants
from debug_logging import log_debug
from models import (
    Cache, DeviceTree, DiskLine, HealthState, Importable, Log, Mirror, Naked,
    NotImportable, Pool, RaidLevel, RaidZ, Spare, SpareStatus, Vdev,
)
from parsers.zpool_import import VDEV_RULES, Rule, SyntaxNode
from zfs_errors import ZfsConsistencyError


def _single_line(text: str) -> str:
    """Re-joins wrapped free text into one line."""
    return " ".join(text.split())


class ZpoolImportBuilder:
    """Maps syntax tree nodes to domain values."""

    # --- Leaves ---
    @staticmethod
    def _child(node: SyntaxNode, rule: Rule) -> SyntaxNode:
        child = node.find(rule)
        if child is None:
            raise ZfsConsistencyError(f"'{node.rule.value}' node has no '{rule.value}' child.",
                                      rule=node.rule.value, raw_value=node.text)
        return child

    @staticmethod
    def _health(node: SyntaxNode) -> HealthState:
        try:
            return HealthState.from_token(node.text)
        except ValueError as e:
            raise ZfsConsistencyError(str(e), rule=node.rule.value, raw_value=node.text) from e

    @staticmethod
    def _optional_note(node: SyntaxNode) -> Optional[str]:
        note = node.find(Rule.NOTE)
        return note.text if note is not None else None

    @staticmethod
    def _pool_id(node: SyntaxNode) -> int:
        digits = ZpoolImportBuilder._child(node, Rule.DIGITS)
        try:
            value = int(digits.text)
        except ValueError as e:
            raise ZfsConsistencyError("Pool id is not a decimal number.", rule=digits.rule.value,
                                      raw_value=digits.text) from e
        if value > constants.POOL_ID_MAX:
            raise ZfsConsistencyError("Pool id does not fit in 64 bits.", rule=digits.rule.value,
                                      raw_value=digits.text)
        return value

    @staticmethod
    def _advisory(node: SyntaxNode):
        msg = ZpoolImportBuilder._child(node, Rule.ACTION_MSG)
        if len(msg.children) != 1:
            raise ZfsConsistencyError("Advisory matched no classification.", rule=msg.rule.value,
                                      raw_value=msg.text)
        classified = msg.children[0]
        if classified.rule is Rule.ACTION_GOOD_MSG:
            return Importable(_single_line(classified.text))
        if classified.rule is Rule.ACTION_BAD_MSG:
            return NotImportable(_single_line(classified.text))
        # Never default to importable
        raise ZfsConsistencyError("Advisory matched no classification.", rule=classified.rule.value,
                                  raw_value=classified.text)

    @staticmethod
    def _url(node: SyntaxNode) -> str:
        url = ZpoolImportBuilder._child(node, Rule.URL).text
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise ZfsConsistencyError("Invalid reference URL.", rule=Rule.URL.value, raw_value=url)
        return url

    @staticmethod
    def build_disk(node: SyntaxNode) -> DiskLine:
        """Builds a DiskLine from a `disk_line` or `aux_disk_line` node."""
        if node.rule not in (Rule.DISK_LINE, Rule.AUX_DISK_LINE):
            raise ZfsConsistencyError(f"Expected a device line, got '{node.rule.value}'.",
                                      rule=node.rule.value, raw_value=node.text)
        path = ZpoolImportBuilder._child(node, Rule.PATH).text
        state_node = node.find(Rule.STATE_ENUM)
        spare_node = node.find(Rule.SPARE_STATUS)
        if node.rule is Rule.DISK_LINE and state_node is None:
            raise ZfsConsistencyError("Device line has no state.", rule=node.rule.value, raw_value=node.text)
        return DiskLine(
            path=PurePosixPath(path),
            state=ZpoolImportBuilder._health(state_node) if state_node is not None else None,
            note=ZpoolImportBuilder._optional_note(node),
            spare_status=SpareStatus(spare_node.text) if spare_node is not None else None,
        )

    # --- Vdevs ---
    @staticmethod
    def _members(node: SyntaxNode):
        return tuple(ZpoolImportBuilder.build_disk(child) for child in node.find_all(Rule.DISK_LINE))

    @staticmethod
    def _build_naked(node: SyntaxNode) -> Vdev:
        return Naked(ZpoolImportBuilder.build_disk(ZpoolImportBuilder._child(node, Rule.DISK_LINE)))

    @staticmethod
    def _build_mirror(node: SyntaxNode) -> Vdev:
        group = ZpoolImportBuilder._child(node, Rule.GROUP_LINE)
        return Mirror(
            disks=ZpoolImportBuilder._members(node),
            name=ZpoolImportBuilder._child(group, Rule.MIRROR_NAME).text,
            state=ZpoolImportBuilder._health(ZpoolImportBuilder._child(group, Rule.STATE_ENUM)),
        )

    @staticmethod
    def _build_raidz(node: SyntaxNode) -> Vdev:
        group = ZpoolImportBuilder._child(node, Rule.GROUP_LINE)
        name = ZpoolImportBuilder._child(group, Rule.RAIDZ_NAME).text
        # "raidz" alone is single parity
        digit = name[len("raidz"):len("raidz") + 1]
        level = RaidLevel(int(digit)) if digit.isdigit() else RaidLevel.Z1
        return RaidZ(
            level=level,
            disks=ZpoolImportBuilder._members(node),
            name=name,
            state=ZpoolImportBuilder._health(ZpoolImportBuilder._child(group, Rule.STATE_ENUM)),
        )

    @staticmethod
    def _aux_disk(node: SyntaxNode) -> DiskLine:
        lines = [child for child in node.children if child.rule in (Rule.DISK_LINE, Rule.AUX_DISK_LINE)]
        if len(lines) != 1:
            raise ZfsConsistencyError(f"'{node.rule.value}' must wrap exactly one device.",
                                      rule=node.rule.value, raw_value=node.text)
        return ZpoolImportBuilder.build_disk(lines[0])

    @staticmethod
    def _build_spare(node: SyntaxNode) -> Vdev:
        return Spare(ZpoolImportBuilder._aux_disk(node))

    @staticmethod
    def _build_log(node: SyntaxNode) -> Vdev:
        return Log(ZpoolImportBuilder._aux_disk(node))

    @staticmethod
    def _build_cache(node: SyntaxNode) -> Vdev:
        return Cache(ZpoolImportBuilder._aux_disk(node))

    @staticmethod
    def build_vdev(node: SyntaxNode) -> Vdev:
        """Builds one top-level vdev from a `vdev` node."""
        if node.rule is not Rule.VDEV or len(node.children) != 1:
            raise ZfsConsistencyError("Expected a 'vdev' node wrapping one group.",
                                      rule=node.rule.value, raw_value=node.text)
        inner = node.children[0]
        builder = _VDEV_BUILDERS.get(inner.rule)
        if builder is None:
            raise ZfsConsistencyError(f"No builder for vdev kind '{inner.rule.value}'.",
                                      rule=inner.rule.value, raw_value=inner.text)
        return builder(inner)

    # --- Pool ---
    @staticmethod
    def build_pool(node: SyntaxNode) -> Pool:
        """
        Builds a Pool from a `zpool_import` node.

        Walks the children in order and dispatches on their rule. A label the
        builder does not know means the grammar changed without the builder
        and raises ZfsConsistencyError rather than being skipped.
        """
        if node.rule is not Rule.ZPOOL_IMPORT:
            raise ZfsConsistencyError(f"Expected a 'zpool_import' node, got '{node.rule.value}'.",
                                      rule=node.rule.value)

        fields: Dict[str, Any] = {}
        for child in node.children:
            handler = _POOL_FIELD_HANDLERS.get(child.rule)
            if handler is None:
                raise ZfsConsistencyError(f"Unexpected '{child.rule.value}' node in pool block.",
                                          rule=child.rule.value, raw_value=child.text)
            handler(child, fields)

        for required in ('name', 'id', 'health', 'advisory', 'pool_line'):
            if required not in fields:
                raise ZfsConsistencyError(f"Pool block is missing '{required}'.", rule=node.rule.value)
        vdevs = fields.get('vdevs', ())
        if not vdevs:
            raise ZfsConsistencyError("Pool block lists no devices.", rule=Rule.VDEVS.value)

        pool_line = fields['pool_line']
        pool = Pool(
            name=fields['name'],
            id=fields['id'],
            health=fields['health'],
            advisory=fields['advisory'],
            topology=DeviceTree(
                name=ZpoolImportBuilder._child(pool_line, Rule.NAME).text,
                state=ZpoolImportBuilder._health(ZpoolImportBuilder._child(pool_line, Rule.STATE_ENUM)),
                vdevs=vdevs,
                note=ZpoolImportBuilder._optional_note(pool_line),
            ),
            status_message=fields.get('status_message'),
            see_also=fields.get('see_also'),
            config_note=fields.get('config_note'),
        )
        log_debug(constants.LOG_PREFIX_BUILDER,
                  f"Built pool '{pool.name}' ({pool.id}): {pool.health.value}, {len(vdevs)} vdev(s)")
        return pool

    @staticmethod
    def iter_pools(node: SyntaxNode) -> Iterator[Pool]:
        """
        Yields one Pool per block of a `zpools_import` node, in document order.

        Pools are built as they are pulled. A block that fails to build stops
        the iteration with its error; later blocks are never skipped over.
        """
        if node.rule is not Rule.ZPOOLS_IMPORT:
            raise ZfsConsistencyError(f"Expected a 'zpools_import' node, got '{node.rule.value}'.",
                                      rule=node.rule.value)
        for child in node.children:
            yield ZpoolImportBuilder.build_pool(child)


# --- Dispatch Tables ---
def _set(key: str, convert: Callable[[SyntaxNode], Any]):
    def handler(node: SyntaxNode, fields: Dict[str, Any]):
        fields[key] = convert(node)
    return handler


_POOL_FIELD_HANDLERS: Dict[Rule, Callable[[SyntaxNode, Dict[str, Any]], None]] = {
    Rule.POOL_NAME: _set('name', lambda n: ZpoolImportBuilder._child(n, Rule.NAME).text),
    Rule.POOL_ID: _set('id', ZpoolImportBuilder._pool_id),
    Rule.STATE: _set('health', lambda n: ZpoolImportBuilder._health(ZpoolImportBuilder._child(n, Rule.STATE_ENUM))),
    Rule.STATUS: _set('status_message', lambda n: _single_line(ZpoolImportBuilder._child(n, Rule.STATUS_MSG).text)),
    Rule.ACTION: _set('advisory', ZpoolImportBuilder._advisory),
    Rule.SEE: _set('see_also', ZpoolImportBuilder._url),
    Rule.CONFIG: lambda node, fields: None, # Delimiter only
    Rule.POOL_LINE: _set('pool_line', lambda n: n),
    Rule.VDEVS: _set('vdevs', lambda n: tuple(ZpoolImportBuilder.build_vdev(v) for v in n.children)),
    Rule.CONFIG_NOTE: _set('config_note', lambda n: _single_line(n.text)),
}

_VDEV_BUILDERS: Dict[Rule, Callable[[SyntaxNode], Vdev]] = {
    Rule.NAKED_VDEV: ZpoolImportBuilder._build_naked,
    Rule.MIRROR_VDEV: ZpoolImportBuilder._build_mirror,
    Rule.RAIDZ_VDEV: ZpoolImportBuilder._build_raidz,
    Rule.SPARE_VDEV: ZpoolImportBuilder._build_spare,
    Rule.LOG_VDEV: ZpoolImportBuilder._build_log,
    Rule.CACHE_VDEV: ZpoolImportBuilder._build_cache,
}

# A vdev kind added to the grammar must get a builder here
if set(_VDEV_BUILDERS) != set(VDEV_RULES):
    raise ImportError(
        f"Vdev builders out of sync with grammar: missing {sorted(r.value for r in set(VDEV_RULES) - set(_VDEV_BUILDERS))}"
    )

# --- END OF FILE parsers/zpool_import_builder.py ---
