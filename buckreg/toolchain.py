# buckreg/toolchain.py
"""
Typed toolchain metadata.

Toolchain rules wrap an installed language toolchain and hand consumers one
of these records per kind. Discovering the install root and the version is
done elsewhere; this module only fixes the shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Union

GO = "go"
RUST = "rust"


@dataclass(frozen=True)
class ToolchainDescriptor:
    kind: str
    install_root: Path
    version: str

    def __post_init__(self):
        object.__setattr__(self, "install_root", Path(self.install_root))

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "install_root": str(self.install_root), "version": self.version}


def go_toolchain(goroot: Union[str, Path], version: str) -> ToolchainDescriptor:
    return ToolchainDescriptor(kind=GO, install_root=Path(goroot), version=version)


def rust_toolchain(rust_root: Union[str, Path], version: str) -> ToolchainDescriptor:
    return ToolchainDescriptor(kind=RUST, install_root=Path(rust_root), version=version)
