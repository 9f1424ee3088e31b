"""Backend implementations for reading and writing table rows."""

from graphcopy.backends.direct import DirectSource, DirectWriter
from graphcopy.backends.staging import (
    StagingConnection,
    StagingIntrospector,
    StagingSource,
    StagingWriter,
)

__all__ = [
    "DirectSource",
    "DirectWriter",
    "StagingConnection",
    "StagingIntrospector",
    "StagingSource",
    "StagingWriter",
]
