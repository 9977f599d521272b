"""Tests for parsers/zpool_import.py: rule spans and the indentation pass."""

import pytest

from parsers.zpool_import import FOLDED_RULES, GRAMMAR, Rule, SyntaxNode, _new_cache, parse
from zfs_errors import ZfsParsingError

from samples import MIXED_TOPOLOGY, MULTIPLE, NAKED_BAD, NAKED_GOOD


def shape(node: SyntaxNode):
    """Rule names only, for checking nesting without offsets."""
    return (node.rule.value, [shape(child) for child in node.children])


def test_every_parsed_rule_exists_in_grammar():
    for rule in Rule:
        if rule in FOLDED_RULES:
            continue
        assert rule.value in GRAMMAR, rule


def test_action_good():
    one_line = " action: The pool can be imported using its name or numeric identifier.\n"
    node = parse(one_line, Rule.ACTION)
    assert node.as_tokens() == (
        "action", 0, 72, [
            ("action_msg", 9, 72, [("action_good_msg", 9, 72, [])]),
        ],
    )


def test_action_bad():
    two_lines = (" action: The pool cannot be imported. Attach the missing\n"
                 "        devices and try again.\n")
    node = parse(two_lines, Rule.ACTION)
    assert node.as_tokens() == (
        "action", 0, 88, [
            ("action_msg", 9, 88, [("action_bad_msg", 9, 88, [])]),
        ],
    )


def test_action_phrase_wrapped_across_lines():
    text = (" action: The pool cannot be\n"
            "\timported due to damaged devices or data.\n")
    node = parse(text, Rule.ACTION)
    assert node.find(Rule.ACTION_MSG).children[0].rule is Rule.ACTION_BAD_MSG


def test_action_must_be_one_of_the_two_classes():
    with pytest.raises(ZfsParsingError) as excinfo:
        parse(" action: Please ask your administrator.\n", Rule.ACTION)
    assert excinfo.value.rule == "action_msg"
    assert excinfo.value.line == 1
    assert excinfo.value.column == 10


def test_bad_phrase_wins_over_good_phrase():
    text = " action: The pool must be exported from host1 before it can be imported.\n"
    node = parse(text, Rule.ACTION)
    assert node.find(Rule.ACTION_MSG).children[0].rule is Rule.ACTION_BAD_MSG


def test_naked_good():
    tree = parse(NAKED_GOOD, Rule.ZPOOL_IMPORT)
    assert tree.as_tokens() == (
        "zpool_import", 0, 258, [
            ("pool_name", 0, 17, [("name", 6, 16, [])]),
            ("pool_id", 17, 46, [("digits", 26, 45, [])]),
            ("state", 46, 62, [("state_enum", 55, 61, [])]),
            ("action", 62, 134, [("action_msg", 71, 134, [("action_good_msg", 71, 134, [])])]),
            ("config", 134, 143, []),
            ("pool_line", 144, 182, [("name", 152, 162, []), ("state_enum", 175, 181, [])]),
            ("vdevs", 182, 258, [
                ("vdev", 182, 220, [
                    ("naked_vdev", 182, 220, [
                        ("disk_line", 182, 220, [
                            ("path", 192, 211, []),
                            ("state_enum", 213, 219, []),
                        ]),
                    ]),
                ]),
                ("vdev", 220, 258, [
                    ("naked_vdev", 220, 258, [
                        ("disk_line", 220, 258, [
                            ("path", 230, 249, []),
                            ("state_enum", 251, 257, []),
                        ]),
                    ]),
                ]),
            ]),
        ],
    )


def test_naked_bad_sections():
    tree = parse(NAKED_BAD, Rule.ZPOOL_IMPORT)
    assert [child.rule for child in tree.children] == [
        Rule.POOL_NAME, Rule.POOL_ID, Rule.STATE, Rule.STATUS, Rule.ACTION, Rule.SEE,
        Rule.CONFIG, Rule.POOL_LINE, Rule.VDEVS, Rule.CONFIG_NOTE,
    ]
    see = tree.find(Rule.SEE)
    assert (see.start, see.end) == (209, 252)
    url = see.find(Rule.URL)
    assert (url.start, url.end) == (217, 251)
    assert url.text == "http://illumos.org/msg/ZFS-8000-6X"

    pool_line = tree.find(Rule.POOL_LINE)
    assert (pool_line.start, pool_line.end) == (262, 317)
    assert pool_line.find(Rule.NOTE).text == "missing device"

    action = tree.find(Rule.ACTION)
    assert (action.start, action.end) == (121, 209)
    assert action.find(Rule.ACTION_MSG).children[0].rule is Rule.ACTION_BAD_MSG


def test_spans_index_the_original_text():
    tree = parse(NAKED_BAD, Rule.ZPOOL_IMPORT)

    def walk(node):
        assert NAKED_BAD[node.start:node.end] == node.text
        for child in node.children:
            walk(child)

    walk(tree)


def test_mixed_topology_nesting():
    tree = parse(MIXED_TOPOLOGY, Rule.ZPOOL_IMPORT)
    vdevs = tree.find(Rule.VDEVS)
    disk = ("disk_line", [("path", []), ("state_enum", [])])
    assert [shape(v) for v in vdevs.children] == [
        ("vdev", [("mirror_vdev", [
            ("group_line", [("mirror_name", []), ("state_enum", [])]), disk, disk,
        ])]),
        ("vdev", [("raidz_vdev", [
            ("group_line", [("raidz_name", []), ("state_enum", [])]), disk, disk, disk, disk,
        ])]),
        ("vdev", [("log_vdev", [disk])]),
        ("vdev", [("cache_vdev", [("aux_disk_line", [("path", [])])])]),
        ("vdev", [("spare_vdev", [("aux_disk_line", [("path", [])])])]),
        ("vdev", [("spare_vdev", [("aux_disk_line", [("path", []), ("spare_status", [])])])]),
    ]


def test_group_span_covers_its_members():
    tree = parse(MIXED_TOPOLOGY, Rule.ZPOOL_IMPORT)
    mirror = tree.find(Rule.VDEVS).children[0].children[0]
    assert mirror.text == ("\t  mirror-0  ONLINE\n"
                           "\t    sda     ONLINE\n"
                           "\t    sdb     ONLINE\n")


def test_indentation_is_relative_not_absolute():
    text = (
        "pool: wide\n"
        "id: 1\n"
        "state: ONLINE\n"
        "action: The pool can be imported using its name or numeric identifier.\n"
        "config:\n"
        "\n"
        "  wide ONLINE\n"
        "   mirror-0 ONLINE\n"
        "      a ONLINE\n"
        "      b ONLINE\n"
        "   c ONLINE\n"
    )
    vdevs = parse(text, Rule.ZPOOL_IMPORT).find(Rule.VDEVS)
    assert [v.children[0].rule for v in vdevs.children] == [Rule.MIRROR_VDEV, Rule.NAKED_VDEV]


def test_multiple_blocks():
    tree = parse(MULTIPLE, Rule.ZPOOLS_IMPORT)
    assert [child.rule for child in tree.children] == [Rule.ZPOOL_IMPORT, Rule.ZPOOL_IMPORT]
    names = [child.find(Rule.POOL_NAME).find(Rule.NAME).text for child in tree.children]
    assert names == ["naked_test", "naked_test2"]


def test_empty_listing_has_no_blocks():
    assert parse("", Rule.ZPOOLS_IMPORT).children == ()
    assert parse("\n\n", Rule.ZPOOLS_IMPORT).children == ()


def test_truncated_after_config_fails():
    cut = NAKED_GOOD.index(" config:\n") + len(" config:\n")
    with pytest.raises(ZfsParsingError) as excinfo:
        parse(NAKED_GOOD[:cut], Rule.ZPOOL_IMPORT)
    assert excinfo.value.rule == "pool_line"
    assert excinfo.value.line == 6
    assert excinfo.value.offset == cut


def test_unknown_state_token_fails():
    text = NAKED_GOOD.replace("  state: ONLINE", "  state: SLEEPY")
    with pytest.raises(ZfsParsingError) as excinfo:
        parse(text, Rule.ZPOOL_IMPORT)
    assert excinfo.value.rule == "state_enum"
    assert excinfo.value.line == 3
    assert excinfo.value.raw_line == "  state: SLEEPY"


def test_unknown_device_state_reports_device_line():
    text = NAKED_GOOD.replace("vdev1  ONLINE", "vdev1  SLEEPY")
    with pytest.raises(ZfsParsingError) as excinfo:
        parse(text, Rule.ZPOOL_IMPORT)
    assert excinfo.value.line == 9


def test_second_block_error_points_into_second_block():
    text = MULTIPLE.replace("naked_test2\n     id: 3364973538352047455", "naked_test2\n     id: x")
    with pytest.raises(ZfsParsingError) as excinfo:
        parse(text, Rule.ZPOOLS_IMPORT)
    assert excinfo.value.rule == "digits"
    assert excinfo.value.line == 12


def test_group_without_members_fails():
    text = NAKED_GOOD.replace(
        "          /vdevs/import/vdev0  ONLINE\n",
        "          mirror-0             ONLINE\n",
    )
    with pytest.raises(ZfsParsingError) as excinfo:
        parse(text, Rule.ZPOOL_IMPORT)
    assert excinfo.value.rule == "mirror_vdev"
    assert excinfo.value.line == 8
    assert excinfo.value.column == 11


def test_device_not_nested_under_pool_line_fails():
    text = NAKED_GOOD.replace("          /vdevs/import/vdev1", "        /vdevs/import/vdev1")
    with pytest.raises(ZfsParsingError) as excinfo:
        parse(text, Rule.ZPOOL_IMPORT)
    assert excinfo.value.rule == "vdev"
    assert excinfo.value.line == 9


def test_stateless_device_outside_spares_fails():
    text = NAKED_GOOD.replace("/vdevs/import/vdev1  ONLINE", "/vdevs/import/vdev1")
    with pytest.raises(ZfsParsingError) as excinfo:
        parse(text, Rule.ZPOOL_IMPORT)
    assert excinfo.value.rule == "disk_line"


def test_mirrored_log_is_unsupported():
    text = MIXED_TOPOLOGY.replace(
        "\tlogs\n\t  sdg       ONLINE\n",
        "\tlogs\n\t  mirror-2  ONLINE\n\t    sdg     ONLINE\n\t    sdk     ONLINE\n",
    )
    with pytest.raises(ZfsParsingError) as excinfo:
        parse(text, Rule.ZPOOL_IMPORT)
    assert excinfo.value.rule == "log_vdev"


@pytest.mark.parametrize("replacement", [
    "\tspecial\n\t  sdg       ONLINE\n",
    "\t  draid1:2d:3c:0s-0  ONLINE\n\t    sdg     ONLINE\n\t    sdk     ONLINE\n",
])
def test_unsupported_device_classes_fail(replacement):
    text = MIXED_TOPOLOGY.replace("\tlogs\n\t  sdg       ONLINE\n", replacement)
    with pytest.raises(ZfsParsingError) as excinfo:
        parse(text, Rule.ZPOOL_IMPORT)
    assert excinfo.value.line == 16


def test_folded_rules_cannot_be_parsed_directly():
    with pytest.raises(ValueError):
        parse("whatever", Rule.MIRROR_VDEV)


def test_non_text_input_is_rejected():
    with pytest.raises(TypeError):
        parse(b"pool: x\n", Rule.ZPOOL_IMPORT)


def test_packrat_cache_accepts_both_layouts():
    cache = _new_cache()
    assert cache.get((id(GRAMMAR), 0), "missing") == "missing"
    cache[id(GRAMMAR)][0] = None
    assert cache[id(GRAMMAR)] == {0: None}


def test_every_entry_rule_parses_with_installed_parsimonious():
    assert parse(NAKED_GOOD, Rule.ZPOOL_IMPORT).rule is Rule.ZPOOL_IMPORT
    assert len(parse(MULTIPLE, Rule.ZPOOLS_IMPORT).children) == 2
    assert parse("The pool can be imported.", Rule.ACTION_MSG).rule is Rule.ACTION_MSG


def test_nested_vdev_inside_mirror_fails():
    text = MIXED_TOPOLOGY.replace(
        "\t  mirror-0  ONLINE\n\t    sda     ONLINE\n\t    sdb     ONLINE\n",
        "\t  mirror-0  DEGRADED\n"
        "\t    sda     ONLINE\n"
        "\t    replacing-1  DEGRADED\n"
        "\t      sdb   OFFLINE\n"
        "\t      sdk   ONLINE\n",
    )
    with pytest.raises(ZfsParsingError) as excinfo:
        parse(text, Rule.ZPOOL_IMPORT)
    assert excinfo.value.rule == "mirror_vdev"
    assert excinfo.value.line == 11
    assert excinfo.value.raw_line == "\t      sdb   OFFLINE"


def test_mirror_members_at_mixed_depths_fail():
    text = MIXED_TOPOLOGY.replace("\t    sdb     ONLINE\n", "\t      sdb   ONLINE\n")
    with pytest.raises(ZfsParsingError) as excinfo:
        parse(text, Rule.ZPOOL_IMPORT)
    assert excinfo.value.rule == "mirror_vdev"
    assert excinfo.value.line == 10


def test_raidz_member_shallower_than_first_fails():
    text = MIXED_TOPOLOGY.replace("\t    sdc     ONLINE\n", "\t      sdc   ONLINE\n")
    with pytest.raises(ZfsParsingError) as excinfo:
        parse(text, Rule.ZPOOL_IMPORT)
    assert excinfo.value.rule == "raidz_vdev"
    assert excinfo.value.line == 13


def test_trailing_junk_names_the_line_rule():
    text = NAKED_GOOD.replace("  state: ONLINE", "  state: DEGRADED extra")
    with pytest.raises(ZfsParsingError) as excinfo:
        parse(text, Rule.ZPOOL_IMPORT)
    assert excinfo.value.rule == "state"
    assert excinfo.value.line == 3
    assert excinfo.value.column == 18
    assert "Rule 'state' didn't match." in str(excinfo.value)


def test_trailing_junk_after_pool_name():
    text = NAKED_GOOD.replace("pool: naked_test\n", "pool: naked_test: x\n")
    with pytest.raises(ZfsParsingError) as excinfo:
        parse(text, Rule.ZPOOL_IMPORT)
    assert excinfo.value.rule == "pool_name"
    assert excinfo.value.line == 1
