"""Shared test fixtures for zstate tests."""
from typing import Dict, List, Optional, Tuple, Union

import pytest

from zstate.core.executor import CommandExecutor, RunResult
from zstate.core.zfs_manager import ZFSManager

# A property is either a plain value (source "local", raw == value) or (source, value, raw)
PropertyRow = Union[str, Tuple[str, str, str]]


def _row(value: PropertyRow) -> Tuple[str, str, str]:
    if isinstance(value, tuple):
        return value
    return ("local", value, value)


class FakeRunner:
    """Records issued command lines and answers them from scripted rules.

    A rule matches a command that equals its pattern or starts with the
    pattern followed by a space. Rules are tried in registration order; a rule
    registered with `times` stops matching once used up. Unmatched commands
    succeed with empty output.
    """

    def __init__(self):
        self.commands: List[str] = []
        self.rules: List[dict] = []

    def on(self, pattern: str, stdout: str = "", stderr: str = "", completed: bool = True,
           error: Optional[BaseException] = None, times: Optional[int] = None) -> "FakeRunner":
        self.rules.append({
            "pattern": pattern,
            "result": RunResult(stdout=stdout, stderr=stderr, completed=completed, error=error),
            "times": times,
        })
        return self

    def run(self, command: str, timeout: float) -> RunResult:
        self.commands.append(command)
        for rule in self.rules:
            pattern = rule["pattern"]
            if command != pattern and not command.startswith(pattern + " "):
                continue
            if rule["times"] is not None:
                if rule["times"] == 0:
                    continue
                rule["times"] -= 1
            return rule["result"]
        return RunResult()

    def issued(self, prefix: str = "") -> List[str]:
        return [c for c in self.commands if c.startswith(prefix)]

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        return False

    # ----------------------------
    # Host scripting helpers
    # ----------------------------

    def on_properties(self, base: str, resource: str, properties: Dict[str, PropertyRow],
                      times: Optional[int] = None) -> "FakeRunner":
        rows = {name: _row(value) for name, value in properties.items()}
        formatted = "".join(f"{name}\t{source}\t{value}\n" for name, (source, value, _) in rows.items())
        raw = "".join(f"{name}\t{raw}\n" for name, (_, _, raw) in rows.items())
        self.on(f"{base} get -H -o property,source,value all {resource}", formatted, times=times)
        self.on(f"{base} get -Hp -o property,value all {resource}", raw, times=times)
        return self

    def on_missing_dataset(self, name: str, times: Optional[int] = None) -> "FakeRunner":
        return self.on(
            f"zfs get -H -o property,source,value all {name}",
            stderr=f"cannot open '{name}': dataset does not exist\n",
            times=times,
        )

    def on_missing_pool(self, name: str, times: Optional[int] = None) -> "FakeRunner":
        return self.on(
            f"zpool list -HPv {name}",
            stderr=f"cannot open '{name}': no such pool\n",
            times=times,
        )

    def add_filesystem(self, name: str, guid: str = "1111", mountpoint: str = "none",
                       properties: Optional[Dict[str, PropertyRow]] = None,
                       times: Optional[int] = None) -> "FakeRunner":
        rows: Dict[str, PropertyRow] = {
            "type": ("-", "filesystem", "filesystem"),
            "guid": ("-", guid, guid),
            "creation": ("-", "Sat Jan  4 12:00 2025", "1735992000"),
            "used": ("-", "96K", "98304"),
            "available": ("-", "1.7T", "1869169934336"),
            "referenced": ("-", "96K", "98304"),
            "mounted": ("-", "no" if mountpoint in ("none", "legacy") else "yes", "no"),
            "mountpoint": ("local", mountpoint, mountpoint),
            "compression": ("inherited from tank", "lz4", "lz4"),
        }
        rows.update(properties or {})
        return self.on_properties("zfs", name, rows, times=times)

    def add_volume(self, name: str, guid: str = "2222", volsize: str = "10G",
                   volsize_raw: str = "10737418240", refreservation: str = "none",
                   properties: Optional[Dict[str, PropertyRow]] = None,
                   times: Optional[int] = None) -> "FakeRunner":
        rows: Dict[str, PropertyRow] = {
            "type": ("-", "volume", "volume"),
            "guid": ("-", guid, guid),
            "used": ("-", "56K", "57344"),
            "volsize": ("local", volsize, volsize_raw),
            "volblocksize": ("default", "16K", "16384"),
            "refreservation": ("default" if refreservation == "none" else "local",
                               refreservation, refreservation),
        }
        rows.update(properties or {})
        return self.on_properties("zfs", name, rows, times=times)

    def add_pool(self, name: str, guid: str = "9999", vdevs: Tuple[str, ...] = ("/dev/sda",),
                 pool_properties: Optional[Dict[str, PropertyRow]] = None,
                 dataset_properties: Optional[Dict[str, PropertyRow]] = None,
                 times: Optional[int] = None) -> "FakeRunner":
        layout = f"{name}\t1.81T\t420K\t1.81T\t-\t-\t0%\t0%\t1.00x\tONLINE\t-\n"
        layout += "".join(f"\t{vdev}\t-\t-\t-\t-\t-\t-\t-\t-\tONLINE\n" for vdev in vdevs)
        self.on(f"zpool list -HPv {name}", layout, times=times)

        dataset_rows: Dict[str, PropertyRow] = {
            "type": ("-", "filesystem", "filesystem"),
            "mountpoint": ("default", f"/{name}", f"/{name}"),
            "compression": ("default", "off", "off"),
        }
        dataset_rows.update(dataset_properties or {})
        self.on_properties("zfs", name, dataset_rows, times=times)

        pool_rows: Dict[str, PropertyRow] = {
            "guid": ("-", guid, guid),
            "size": ("-", "1.81T", "1992864825344"),
            "ashift": ("local", "12", "12"),
            "autotrim": ("default", "off", "off"),
        }
        pool_rows.update(pool_properties or {})
        return self.on_properties("zpool", name, pool_rows, times=times)


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def executor(runner):
    return CommandExecutor(runner)


@pytest.fixture
def manager(executor):
    return ZFSManager(executor)
