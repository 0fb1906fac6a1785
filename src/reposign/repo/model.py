from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal

from pydantic import BaseModel, ConfigDict, Field

PUBLIC_KEY = "public-key"
PUBLIC_KEY_SIZE = "public-key-size"
SIGNATURE_BY = "signature-by"
SIGNATURE_TYPE = "signature-type"


class RepoTrustMetadata(BaseModel):
    """Signer identity recorded in a repository's index metadata."""

    public_key: bytes = Field(alias=PUBLIC_KEY)
    public_key_size: int = Field(alias=PUBLIC_KEY_SIZE, ge=0, le=0xFFFF)
    signature_by: str = Field(alias=SIGNATURE_BY, min_length=1)
    signature_type: Literal["rsa"] = Field(default="rsa", alias=SIGNATURE_TYPE)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_meta(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass
class RepoHandle:
    """An opened repository: package index plus index metadata.

    ``index`` maps package names to their metadata dictionaries.
    """

    repodir: str
    arch: str
    index: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)
    released: bool = False

    @property
    def package_count(self) -> int:
        return len(self.index)

    def release(self) -> None:
        if self.released:
            raise RuntimeError(f"repository {self.repodir} released twice")
        self.released = True
        self.index = {}
        self.meta = {}

    def __enter__(self) -> "RepoHandle":
        return self

    def __exit__(self, *exc) -> None:
        self.release()
