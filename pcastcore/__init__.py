"""Building blocks for a peer-to-peer streaming node: streams, atoms, typed strings, IDs, logging, XML and sockets."""

__version__ = "0.1.0"