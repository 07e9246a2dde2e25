"""
Data models for genes, capture results and run bookkeeping.

Genes and failure records are Pydantic models because they cross the
persistence boundary (CSV in, JSON failure log out); the per-attempt and
per-run bookkeeping types are plain dataclasses.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any
from dataclasses import dataclass, field
from pydantic import BaseModel, ConfigDict, Field

from ..errors import ErrorInfo


class Gene(BaseModel):
    """A gene to collect, as produced by the gene source."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., description="Human-readable gene label, used as the output key")
    id: str = Field(..., description="Orthobrowser search token")

    @property
    def search_token(self) -> str:
        """The id as typed into the site, which only matches lowercase tokens."""
        return self.id.lower()

    def __str__(self) -> str:
        return f"{self.name} ({self.id})"


class CaptureSource(Enum):
    """Channel through which exported data was obtained."""
    NETWORK = "network"
    CLIPBOARD = "clipboard"
    DOM = "dom"


@dataclass
class CaptureResult:
    """Payload obtained for one gene together with its provenance."""
    text: str
    source: CaptureSource

    def __len__(self) -> int:
        return len(self.text)


@dataclass
class AttemptOutcome:
    """Result of one pipeline attempt for one gene."""
    success: bool
    gene: Gene
    attempt: int = 1
    error: Optional[ErrorInfo] = None
    capture_source: Optional[CaptureSource] = None
    marker_written: bool = False

    @property
    def error_message(self) -> str:
        """Stringified error, empty on success."""
        return self.error.message if self.error else ""


class FailureRecord(BaseModel):
    """Entry of the persisted failure log."""

    gene: Gene
    error: str = Field(..., min_length=1)
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())


@dataclass
class RunStatistics:
    """Success/failure counts and timing of a run."""
    total: int = 0
    success_count: int = 0
    fail_count: int = 0
    start_time: datetime = field(default_factory=datetime.now)

    @property
    def processed(self) -> int:
        """Genes finished so far."""
        return self.success_count + self.fail_count

    @property
    def elapsed_seconds(self) -> float:
        """Wall time since the run started."""
        return (datetime.now() - self.start_time).total_seconds()

    @property
    def rate_per_second(self) -> float:
        """Observed throughput in genes per second."""
        elapsed = self.elapsed_seconds
        if elapsed <= 0:
            return 0.0
        return self.processed / elapsed

    @property
    def estimated_remaining_seconds(self) -> Optional[float]:
        """Remaining time extrapolated from observed throughput."""
        rate = self.rate_per_second
        if rate <= 0:
            return None
        return (self.total - self.processed) / rate

    @property
    def success_rate(self) -> float:
        """Calculate success rate as percentage."""
        if self.processed == 0:
            return 0.0
        return (self.success_count / self.processed) * 100.0

    def record(self, success: bool) -> None:
        """Count one finished gene."""
        if success:
            self.success_count += 1
        else:
            self.fail_count += 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "total": self.total,
            "processed": self.processed,
            "success_count": self.success_count,
            "fail_count": self.fail_count,
            "start_time": self.start_time.isoformat(),
            "elapsed_seconds": self.elapsed_seconds,
            "estimated_remaining_seconds": self.estimated_remaining_seconds,
            "success_rate": self.success_rate,
        }
