"""Tests for zfs/zpool output parsers."""
import pytest

from zstate.core.errors import ParseError, PoolLayoutUnavailable
from zstate.core.parsers import (
    build_pool_layout,
    iter_rows,
    parse_formatted_properties,
    parse_name_guid,
    parse_ownership,
    parse_pool_layout,
    parse_raw_properties,
)
from zstate.models.pool import Mirror, PoolLayout
from zstate.models.property import Property, PropertySource

LAYOUT = (
    "tank\t1.81T\t420K\t1.81T\t-\t-\t0%\t0%\t1.00x\tONLINE\t-\n"
    "\t/dev/sda\t-\t-\t-\t-\t-\t-\t-\t-\tONLINE\n"
    "\tmirror-0\t928G\t200K\t928G\t-\t-\t0%\t0%\t-\tONLINE\n"
    "\t/dev/sdb\t-\t-\t-\t-\t-\t-\t-\t-\tONLINE\n"
    "\t/dev/sdc\t-\t-\t-\t-\t-\t-\t-\t-\tONLINE\n"
)


class TestPoolLayout:
    """Layout reconstruction follows listing order."""

    def test_striped_then_mirror(self):
        layout = parse_pool_layout(LAYOUT)

        assert layout.striped == ("/dev/sda",)
        assert layout.mirrors == (Mirror(devices=("/dev/sdb", "/dev/sdc")),)

    def test_order_is_preserved_not_sorted(self):
        layout = build_pool_layout(["/dev/sdz", "/dev/sda", "mirror-0", "/dev/sdy", "/dev/sdb",
                                    "mirror-1", "/dev/sdd", "/dev/sdc"])

        assert layout.striped == ("/dev/sdz", "/dev/sda")
        assert [m.devices for m in layout.mirrors] == [("/dev/sdy", "/dev/sdb"), ("/dev/sdd", "/dev/sdc")]

    def test_devices_after_mirror_marker_join_the_mirror(self):
        layout = build_pool_layout(["mirror-0", "/dev/sda", "/dev/sdb", "/dev/sdc"])

        assert layout.striped == ()
        assert layout.mirrors[0].devices == ("/dev/sda", "/dev/sdb", "/dev/sdc")

    def test_pool_row_only_gives_empty_layout(self):
        assert parse_pool_layout("tank\t1.81T\t-\n") == PoolLayout()

    def test_empty_output_is_unavailable(self):
        with pytest.raises(PoolLayoutUnavailable):
            parse_pool_layout("")

    def test_malformed_vdev_row(self):
        with pytest.raises(ParseError):
            parse_pool_layout("tank\t1.81T\nbroken\n")

    def test_vdev_spec(self):
        layout = PoolLayout(striped=("/dev/sda",), mirrors=(Mirror(devices=("/dev/sdb", "/dev/sdc")),))

        assert layout.vdev_spec() == "/dev/sda mirror /dev/sdb /dev/sdc"

    def test_vdev_spec_escapes_paths(self):
        layout = PoolLayout(striped=("/dev/disk/by-id/my disk",))

        assert layout.vdev_spec() == "'/dev/disk/by-id/my disk'"


class TestPropertyTables:
    def test_formatted_rows(self):
        props = {}
        parse_formatted_properties(
            "compression\tlocal\tlz4\n"
            "atime\tinherited from tank\toff\n"
            "type\t-\tfilesystem\n"
            "used\tdefault\t96K\n",
            props,
        )

        assert props["compression"] == Property("compression", PropertySource.LOCAL, "lz4")
        assert props["atime"].source == PropertySource.INHERITED
        assert props["type"].source == PropertySource.NONE
        assert props["used"].source == PropertySource.DEFAULT

    def test_values_are_not_trimmed(self):
        props = {}
        parse_formatted_properties("comment\tlocal\t  spaced  \n", props)

        assert props["comment"].value == "  spaced  "

    def test_unknown_source_names_the_property(self):
        with pytest.raises(ParseError, match="Error in property compression"):
            parse_formatted_properties("compression\tbogus\tlz4\n", {})

    def test_wrong_column_count(self):
        with pytest.raises(ParseError):
            parse_formatted_properties("compression\tlz4\n", {})

    def test_raw_pass_only_fills_known_properties(self):
        props = {}
        parse_formatted_properties("used\t-\t96K\n", props)
        parse_raw_properties("used\t98304\nextra\t1\n", props)

        assert props["used"].raw_value == "98304"
        assert "extra" not in props

    def test_blank_lines_are_skipped(self):
        assert list(iter_rows("a\tb\n\nc\td\n", columns=2)) == [["a", "b"], ["c", "d"]]

    def test_name_guid(self):
        assert list(parse_name_guid("tank\t111\ntank/data\t222\n")) == [("tank", "111"), ("tank/data", "222")]


class TestOwnership:
    def test_stat_line(self):
        ownership = parse_ownership("www-data,users,33,100\n")

        assert ownership.user_name == "www-data"
        assert ownership.group_name == "users"
        assert ownership.uid == 33
        assert ownership.gid == 100

    def test_wrong_field_count(self):
        with pytest.raises(ParseError):
            parse_ownership("root,root,0")

    def test_non_numeric_ids(self):
        with pytest.raises(ParseError):
            parse_ownership("root,root,zero,0")
