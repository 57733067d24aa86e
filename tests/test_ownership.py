"""Tests for mountpoint ownership lookup and reconciliation."""
import pytest

from zstate.core.errors import ParseError
from zstate.core.ownership import apply_ownership, get_file_ownership, lookup_mountpoint_ownership
from zstate.models.ownership import Ownership


@pytest.mark.parametrize("mountpoint", ["", "none", "legacy"])
def test_lookup_skipped_for_sentinels(runner, executor, mountpoint):
    assert lookup_mountpoint_ownership(executor, mountpoint) is None
    assert runner.commands == []


@pytest.mark.parametrize("mountpoint", ["", "none", "legacy"])
def test_apply_skipped_for_sentinels(runner, executor, mountpoint):
    apply_ownership(executor, mountpoint, "root", "root")

    assert runner.commands == []


def test_lookup_real_mountpoint(runner, executor):
    runner.on("stat -c '%U,%G,%u,%g' /srv/media", "media,video,1000,44\n")

    ownership = lookup_mountpoint_ownership(executor, "/srv/media")

    assert ownership == Ownership(user_name="media", group_name="video", uid=1000, gid=44)


def test_lookup_skipped_when_not_mounted(runner, executor):
    assert lookup_mountpoint_ownership(executor, "/srv/media", mounted=False) is None
    assert runner.commands == []


def test_apply_skipped_when_not_mounted(runner, executor):
    apply_ownership(executor, "/srv/media", "media", "video", mounted=False)

    assert runner.commands == []


def test_garbled_stat_output(runner, executor):
    runner.on("stat", "garbage\n")

    with pytest.raises(ParseError):
        get_file_ownership(executor, "/srv/media")


def test_apply_user_and_group(runner, executor):
    apply_ownership(executor, "/srv/media", "media", 44)

    assert runner.commands == ["chown media /srv/media", "chgrp 44 /srv/media"]


def test_apply_only_what_is_given(runner, executor):
    apply_ownership(executor, "/srv/media", group="video")

    assert runner.commands == ["chgrp video /srv/media"]


def test_apply_escapes_arguments(runner, executor):
    apply_ownership(executor, "/srv/my media", "x; reboot")

    assert runner.commands == ["chown 'x; reboot' '/srv/my media'"]
