"""Configuration for reading a local repository through :mod:`githunks`."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class ConnectorConfig:
    """Runtime options shared by the object store, the differ and the facade.

    Attributes
    ----------
    encoding:
        Codec used to turn patch output and blob contents into text. Both sides
        of a hunk are decoded with the same codec so slices line up.
    errors:
        Error handler passed to :meth:`bytes.decode`. The default
        ``surrogateescape`` keeps undecodable bytes recoverable, so files in
        legacy encodings survive the round trip.
    first_parent:
        Follow only the first parent of merge commits when walking history.
    topo_order:
        Emit history in topological order rather than by commit date.
    """

    encoding: str = "utf-8"
    errors: str = "surrogateescape"
    first_parent: bool = True
    topo_order: bool = True

    def decode(self, data: bytes) -> str:
        """Decode ``data`` with the configured codec."""

        return data.decode(self.encoding, self.errors)


DEFAULT_CONFIG = ConnectorConfig()
