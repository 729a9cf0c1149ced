"""Core data models for the similar products service."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, StrictBool


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class ProductDetail(BaseModel):
    """Immutable product detail as served by the catalog.

    All four fields are mandatory; a payload missing any of them, or with a
    negative price, fails validation instead of yielding a partial record.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(min_length=1)
    name: str
    price: Decimal = Field(ge=0)
    availability: StrictBool


@dataclass(frozen=True)
class AggregatedResult:
    """Details resolved for a root product.

    ``requested`` is the size of the similar id set, so ``missing`` counts the
    details that were dropped because their fetch failed or was not found.
    """
    root_id: str
    products: Tuple[ProductDetail, ...] = ()
    requested: int = 0

    def __len__(self) -> int:
        return len(self.products)

    def __iter__(self):
        return iter(self.products)

    @property
    def missing(self) -> int:
        return self.requested - len(self.products)

    @property
    def ids(self) -> Tuple[str, ...]:
        return tuple(product.id for product in self.products)


@dataclass
class HalfOpenToken:
    """Permit handed out for a trial call while a circuit is half-open."""
    name: str
    timestamp: float


@dataclass(frozen=True)
class CircuitSnapshot:
    """Point-in-time view of a single circuit."""
    name: str
    state: CircuitState
    failure_rate: float
    buffered_calls: int
    failed_calls: int


@dataclass
class CacheStats:
    """Result cache statistics."""
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    size: int = 0
    capacity: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def to_dict(self) -> dict:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "size": self.size,
            "capacity": self.capacity,
            "hit_rate": round(self.hit_rate, 4),
        }


@dataclass
class FetchOutcome:
    """Result of one resilient catalog call, before any fallback is applied."""
    payload: Any = None
    not_found: bool = False
    error: Optional[str] = None
    status_code: Optional[int] = None
    retryable: bool = False
    rejected: bool = False
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None and not self.not_found
