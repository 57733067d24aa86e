"""zstate - declarative ZFS pool and dataset state for a remote host."""

__version__ = "0.3.0"
