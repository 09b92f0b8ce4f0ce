"""funcsplice core: scanning, checksums, metadata, workspace and insertion.

Submodules keep their own names (``funcsplice.core.checksum``,
``funcsplice.core.insert``, …); only classes are lifted to the package.
"""

from funcsplice.core.insert import InsertResult
from funcsplice.core.meta import MetadataHeader
from funcsplice.core.scanner import FunctionBody
from funcsplice.core.workspace import StagedPair, Workspace

__all__ = [
    "FunctionBody",
    "InsertResult",
    "MetadataHeader",
    "StagedPair",
    "Workspace",
]
