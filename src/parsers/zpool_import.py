# --- START OF FILE parsers/zpool_import.py ---
"""
Grammar for `zpool import` listings (the mode without `-a` or a pool name).

The tool has no machine-readable output for this command, so the text is
recognised with a PEG grammar (parsimonious). Every named rule that matters to
the domain builder becomes a labelled span in a small syntax tree; whitespace
and newline helpers stay silent.

Indentation in the `config:` section is relative, never pinned to columns: the
PEG pass recognises each device line on its own, then `_nest_vdevs` folds the
flat line list into vdev groups by comparing each line's indentation with the
group line above it.

Example input (one block):

       pool: tank
         id: 3364973538352047455
      state: ONLINE
     action: The pool can be imported using its name or numeric identifier.
     config:

            tank        ONLINE
              mirror-0  ONLINE
                sda     ONLINE
                sdb     ONLINE
"""

import dataclasses
import re
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from parsimonious.exceptions import ParseError
from parsimonious.grammar import Grammar

import constants
from debug_logging import log_debug, log_error
from zfs_errors import ZfsParsingError, line_and_column, line_at


class Rule(str, Enum):
    """Labels of the syntax tree. Values are the grammar rule names."""
    ZPOOLS_IMPORT = "zpools_import"
    ZPOOL_IMPORT = "zpool_import"
    POOL_NAME = "pool_name"
    POOL_ID = "pool_id"
    STATE = "state"
    STATUS = "status"
    STATUS_MSG = "status_msg"
    ACTION = "action"
    ACTION_MSG = "action_msg"
    ACTION_GOOD_MSG = "action_good_msg"
    ACTION_BAD_MSG = "action_bad_msg"
    SEE = "see"
    URL = "url"
    CONFIG = "config"
    POOL_LINE = "pool_line"
    VDEVS = "vdevs"
    VDEV = "vdev"
    NAKED_VDEV = "naked_vdev"
    MIRROR_VDEV = "mirror_vdev"
    RAIDZ_VDEV = "raidz_vdev"
    SPARE_VDEV = "spare_vdev"
    LOG_VDEV = "log_vdev"
    CACHE_VDEV = "cache_vdev"
    GROUP_LINE = "group_line"
    MIRROR_NAME = "mirror_name"
    RAIDZ_NAME = "raidz_name"
    AUX_HEADER = "aux_header"
    DISK_LINE = "disk_line"
    AUX_DISK_LINE = "aux_disk_line"
    CONFIG_NOTE = "config_note"
    NAME = "name"
    DIGITS = "digits"
    PATH = "path"
    STATE_ENUM = "state_enum"
    SPARE_STATUS = "spare_status"
    NOTE = "note"


# Produced by the indentation pass, not by the PEG grammar
FOLDED_RULES = frozenset({
    Rule.VDEV, Rule.NAKED_VDEV, Rule.MIRROR_VDEV, Rule.RAIDZ_VDEV,
    Rule.SPARE_VDEV, Rule.LOG_VDEV, Rule.CACHE_VDEV,
})

# Every kind of node a `vdev` may wrap
VDEV_RULES = FOLDED_RULES - {Rule.VDEV}

_AUX_VDEV_RULES = dict(zip(constants.AUX_SECTIONS, (Rule.LOG_VDEV, Rule.CACHE_VDEV, Rule.SPARE_VDEV)))

_RULES_BY_NAME = {rule.value: rule for rule in Rule}


# --- Free Text ---
# A wrapped line is indented and does not look like the next "key:" header.
_KEYWORD_AHEAD = r"(?![ \t]*(?:" + "|".join(constants.SECTION_KEYWORDS) + r"):)"
_CONTINUATION = r"\n" + _KEYWORD_AHEAD + r"[ \t]+\S[^\n]*"
_TEXT_BLOCK = r"\S[^\n]*(?:" + _CONTINUATION + r")*(?:\n|\Z)"
_TEXT_BLOCK_CHAR = r"(?:[^\n]|\n" + _KEYWORD_AHEAD + r"(?=[ \t]+\S))"


def _phrase_pattern(phrases: List[str]) -> str:
    # Words may be split across wrapped lines
    return "|".join(r"\s+".join(re.escape(word) for word in phrase.split()) for phrase in phrases)


def _classified_block(phrases: List[str]) -> str:
    """A text block that contains one of phrases somewhere inside it."""
    return r"(?=" + _TEXT_BLOCK_CHAR + r"*?(?:" + _phrase_pattern(phrases) + r"))" + _TEXT_BLOCK


GRAMMAR_RULES = r'''
    zpools_import         = blank* zpool_import_entry* end
    zpool_import_entry    = zpool_import blank*
    zpool_import_document = blank* zpool_import end

    zpool_import    = pool_name pool_id state status? action see? config blank* pool_line vdevs config_note?

    pool_name       = hs "pool:" sp name nl
    pool_id         = hs "id:" sp digits nl
    state           = hs "state:" sp state_enum nl
    status          = hs "status:" sp status_msg
    action          = hs "action:" sp action_msg
    see             = hs "see:" sp url nl
    config          = hs "config:" nl

    status_msg      = ~r"TEXT_BLOCK"
    action_msg      = action_bad_msg / action_good_msg
    action_bad_msg  = ~r"BAD_BLOCK"
    action_good_msg = ~r"GOOD_BLOCK"

    pool_line       = hs name sp state_enum (sp note)? nl
    vdevs           = device_line+
    device_line     = group_line / aux_header / disk_line / aux_disk_line
    group_line      = hs group_name sp state_enum (sp note)? nl
    group_name      = mirror_name / raidz_name
    mirror_name     = ~r"mirror(?:-[0-9]+)?(?=[ \t])"
    raidz_name      = ~r"raidz[123]?(?:-[0-9]+)?(?=[ \t])"
    aux_header      = hs aux_kind nl
    aux_kind        = ~r"(?:AUX_SECTIONS)(?=[ \t]*(?:\n|\Z))"
    disk_line       = hs path sp state_enum (sp note)? nl
    aux_disk_line   = hs path (sp aux_state (sp note)?)? nl
    aux_state       = state_enum / spare_status
    config_note     = blank+ note_line+
    note_line       = ~r"KEYWORD_AHEAD[ \t]+\S[^\n]*(?:\n|\Z)"

    name            = ~r"[^\s:]+"
    path            = ~r"\S*[^\s:]"
    digits          = ~r"[0-9]+"
    state_enum      = ~r"(?:HEALTH_STATES)(?!\S)"
    spare_status    = ~r"(?:SPARE_STATUSES)(?!\S)"
    note            = ~r"[^\n]*\S"
    url             = ~r"[A-Za-z][A-Za-z0-9+.-]*://\S+"

    hs              = ~r"[ \t]*"
    sp              = ~r"[ \t]+"
    nl              = ~r"[ \t]*(?:\n|\Z)"
    blank           = ~r"[ \t]*\n"
    end             = ~r"\s*"
'''


def _build_grammar() -> Grammar:
    substitutions = {
        "BAD_BLOCK": _classified_block(constants.NOT_IMPORTABLE_PHRASES),
        "GOOD_BLOCK": _classified_block(constants.IMPORTABLE_PHRASES),
        "TEXT_BLOCK": _TEXT_BLOCK,
        "KEYWORD_AHEAD": _KEYWORD_AHEAD,
        "HEALTH_STATES": "|".join(constants.HEALTH_STATES),
        "SPARE_STATUSES": "|".join(constants.SPARE_STATUSES),
        "AUX_SECTIONS": "|".join(constants.AUX_SECTIONS),
    }
    rules = GRAMMAR_RULES
    for placeholder, pattern in substitutions.items():
        rules = rules.replace(placeholder, pattern)
    return Grammar(rules)


GRAMMAR = _build_grammar()

# Entry points that tolerate surrounding blank lines
_ENTRY_RULES = {
    Rule.ZPOOL_IMPORT: "zpool_import_document",
}


@dataclass(frozen=True)
class SyntaxNode:
    """A labelled span of the parsed text. Offsets index the original input."""
    rule: Rule
    start: int
    end: int
    text: str
    children: Tuple['SyntaxNode', ...] = ()

    def find(self, rule: Rule) -> Optional['SyntaxNode']:
        """First direct child labelled rule, or None."""
        for child in self.children:
            if child.rule is rule:
                return child
        return None

    def find_all(self, rule: Rule) -> List['SyntaxNode']:
        return [child for child in self.children if child.rule is rule]

    def as_tokens(self) -> tuple:
        """Nested (rule name, start, end, [children]) tuples, handy for comparing shapes."""
        return (self.rule.value, self.start, self.end, [child.as_tokens() for child in self.children])


# --- Parse Tree Conversion ---
def _prune(node) -> List[SyntaxNode]:
    """Keeps nodes whose rule is a Rule label, lifting the children of silent helpers."""
    children: List[SyntaxNode] = []
    for child in node.children:
        children.extend(_prune(child))
    rule = _RULES_BY_NAME.get(node.expr_name)
    if rule is None:
        return children
    return [SyntaxNode(rule, node.start, node.end, node.text, tuple(children))]


def _indent(node: SyntaxNode) -> int:
    leading = node.text[:len(node.text) - len(node.text.lstrip(' \t'))]
    return len(leading.expandtabs(8))


def _layout_error(message: str, rule: Rule, node: SyntaxNode, source: str) -> ZfsParsingError:
    offset = node.start + len(node.text) - len(node.text.lstrip(' \t'))
    line, column = line_and_column(source, offset)
    return ZfsParsingError(message, rule=rule.value, line=line, column=column,
                           offset=offset, raw_line=line_at(source, offset))


def _wrap(rule: Rule, children: List[SyntaxNode], source: str) -> SyntaxNode:
    start, end = children[0].start, children[-1].end
    return SyntaxNode(rule, start, end, source[start:end], tuple(children))


def _vdev(rule: Rule, children: List[SyntaxNode], source: str) -> SyntaxNode:
    inner = _wrap(rule, children, source)
    return SyntaxNode(Rule.VDEV, inner.start, inner.end, inner.text, (inner,))


def _group_vdev(group_line: SyntaxNode, members: List[SyntaxNode], source: str) -> SyntaxNode:
    rule = Rule.MIRROR_VDEV if group_line.find(Rule.MIRROR_NAME) else Rule.RAIDZ_VDEV
    if not members:
        raise _layout_error("Vdev group has no member devices.", rule, group_line, source)
    # Members share one level; deeper lines mean an interior vdev such as replacing-1
    member_indent = _indent(members[0])
    for member in members:
        if _indent(member) > member_indent:
            raise _layout_error("Unsupported vdev group.", rule, member, source)
        if _indent(member) < member_indent:
            raise _layout_error("Vdev group members are not aligned.", rule, member, source)
        if member.rule is not Rule.DISK_LINE:
            raise _layout_error("Vdev group members must be devices with a state.", rule, member, source)
    return _vdev(rule, [group_line] + members, source)


def _aux_vdevs(header: SyntaxNode, members: List[SyntaxNode], source: str) -> List[SyntaxNode]:
    rule = _AUX_VDEV_RULES[header.text.strip()]
    if not members:
        raise _layout_error(f"'{header.text.strip()}' section has no devices.", rule, header, source)
    allowed = {Rule.DISK_LINE} if rule is Rule.LOG_VDEV else {Rule.DISK_LINE, Rule.AUX_DISK_LINE}
    nested = []
    for member in members:
        if member.rule not in allowed:
            raise _layout_error(f"Unsupported device line in '{header.text.strip()}' section.", rule, member, source)
        nested.append(_vdev(rule, [member], source))
    return nested


def _nest_vdevs(vdevs: SyntaxNode, pool_line: Optional[SyntaxNode], source: str) -> SyntaxNode:
    """
    Folds the flat device lines of a `config:` section into vdev nodes.

    A group line (mirror/raidz) or an aux header (logs/cache/spares) owns every
    following line that is indented deeper than itself. Any other line at the
    top is a naked vdev.
    """
    lines = list(vdevs.children)
    pool_indent = _indent(pool_line) if pool_line is not None else None
    nested: List[SyntaxNode] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        indent = _indent(line)
        j = i + 1
        members = []
        if line.rule in (Rule.GROUP_LINE, Rule.AUX_HEADER):
            while j < len(lines) and _indent(lines[j]) > indent:
                members.append(lines[j])
                j += 1

        if line.rule is Rule.AUX_HEADER:
            nested.extend(_aux_vdevs(line, members, source))
        elif line.rule is Rule.AUX_DISK_LINE:
            raise _layout_error("Device line is missing its state.", Rule.DISK_LINE, line, source)
        else:
            if pool_indent is not None and indent <= pool_indent:
                raise _layout_error("Vdev is not nested under the pool line.", Rule.VDEV, line, source)
            if line.rule is Rule.GROUP_LINE:
                nested.append(_group_vdev(line, members, source))
            elif j < len(lines) and _indent(lines[j]) > indent:
                # e.g. draid groups, whose names the grammar reads as paths
                raise _layout_error("Unsupported vdev group.", Rule.VDEV, line, source)
            else:
                nested.append(_vdev(Rule.NAKED_VDEV, [line], source))
        i = j

    return dataclasses.replace(vdevs, children=tuple(nested))


def _nest(node: SyntaxNode, source: str) -> SyntaxNode:
    if node.rule is Rule.ZPOOLS_IMPORT:
        return dataclasses.replace(node, children=tuple(_nest(child, source) for child in node.children))
    if node.rule is Rule.ZPOOL_IMPORT:
        pool_line = node.find(Rule.POOL_LINE)
        children = tuple(
            _nest_vdevs(child, pool_line, source) if child.rule is Rule.VDEVS else child
            for child in node.children
        )
        return dataclasses.replace(node, children=children)
    if node.rule is Rule.VDEVS:
        return _nest_vdevs(node, None, source)
    return node


# --- Entry Point ---
def _new_cache() -> defaultdict:
    """Packrat cache for match_core, keyed by (expr id, pos) or by expr id then pos."""
    return defaultdict(dict)


# Line-level labels, most specific first
_LINE_RULES = (
    Rule.POOL_NAME, Rule.POOL_ID, Rule.STATE, Rule.STATUS, Rule.ACTION, Rule.SEE, Rule.CONFIG,
    Rule.GROUP_LINE, Rule.AUX_HEADER, Rule.DISK_LINE, Rule.AUX_DISK_LINE, Rule.POOL_LINE,
)


def _enclosing_label(text: str, offset: int) -> Optional[Rule]:
    """
    Names the labelled line rule that was being matched when a silent helper
    (whitespace, newline) failed at offset: the rule that, started at the
    beginning of that line, fails exactly at offset.
    """
    line_start = text.rfind('\n', 0, offset) + 1
    if offset == line_start:
        return None
    for rule in _LINE_RULES:
        error = ParseError(text)
        node = GRAMMAR[rule.value].match_core(text, line_start, _new_cache(), error)
        if node is None and error.pos == offset:
            return rule
    return None


def _syntax_error(error: ParseError, text: str, rule: Rule) -> ZfsParsingError:
    offset = max(error.pos, 0)
    name = getattr(error.expr, 'name', '') if error.expr is not None else ''
    label = _RULES_BY_NAME.get(name) or _enclosing_label(text, offset) or rule
    line, column = line_and_column(text, offset)
    return ZfsParsingError(f"Rule '{label.value}' didn't match.", rule=label.value, line=line, column=column,
                           offset=offset, raw_line=line_at(text, offset))


def parse(text: str, rule: Rule = Rule.ZPOOL_IMPORT) -> SyntaxNode:
    """
    Parses text as rule and returns the syntax tree rooted at that rule.

    The whole text must match. On failure raises ZfsParsingError naming the
    labelled rule that failed furthest into the text (for whitespace and line
    ending failures, the line rule being matched); no partial tree is returned.
    """
    if not isinstance(text, str):
        raise TypeError(f"Expected str, got {type(text).__name__}")
    if rule in FOLDED_RULES:
        raise ValueError(f"Rule '{rule.value}' is built by the indentation pass and cannot be parsed directly.")

    rule_name = _ENTRY_RULES.get(rule, rule.value)
    log_debug(constants.LOG_PREFIX_GRAMMAR, f"Parsing {len(text)} characters as '{rule.value}'")

    # match_core keeps the furthest failure even when a prefix matched
    error = ParseError(text)
    node = GRAMMAR[rule_name].match_core(text, 0, _new_cache(), error)
    if node is None or node.end < len(text):
        if node is not None and (error.expr is None or error.pos < node.end):
            line, column = line_and_column(text, node.end)
            exc = ZfsParsingError(f"Unexpected text after '{rule.value}'.", rule=rule.value, line=line,
                                  column=column, offset=node.end, raw_line=line_at(text, node.end))
        else:
            exc = _syntax_error(error, text, rule)
        log_error(constants.LOG_PREFIX_GRAMMAR, str(exc))
        raise exc

    matches = [n for n in _prune(node) if n.rule is rule]
    if len(matches) != 1:
        # Only reachable if the entry rule table and the grammar disagree
        raise ZfsParsingError(f"Expected one '{rule.value}' node, found {len(matches)}.", rule=rule.value)
    try:
        return _nest(matches[0], text)
    except ZfsParsingError as e:
        log_error(constants.LOG_PREFIX_GRAMMAR, str(e))
        raise

# --- END OF FILE parsers/zpool_import.py ---
