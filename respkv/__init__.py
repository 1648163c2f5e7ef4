"""Building blocks for a RESP key-value server: framing, commands, data types, RDB loading and replication."""

__version__ = "0.1.0"