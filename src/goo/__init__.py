"""goo-cli: client for the goo optimistic oracle realm on gno.land."""

__version__ = "0.1.0"
