"""
Per-source outcome of one search dispatch.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from app.schemas.products import Product


@dataclass(frozen=True)
class SourceResult:
    source: str
    products: List[Product] = field(default_factory=list)
    error: Optional[Exception] = None
    instructions: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, source: str, products: List[Product], instructions: str = "") -> "SourceResult":
        return cls(source=source, products=list(products), instructions=instructions)

    @classmethod
    def failure(cls, source: str, error: Exception) -> "SourceResult":
        return cls(source=source, products=[], error=error)
