from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

BYTES_PER_MB = 1024 * 1024


class CamelModel(BaseModel):
    """Base model der serialiserer felter i lowerCamelCase som i de persisterede JSON filer."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MonitorConfig(CamelModel):
    """
    Persisteret definition af én overvåget mappe.

    `path` kan indeholde %VAR% placeholders som først udvides ved scanning.
    `max_depth` på None eller 0 betyder ubegrænset dybde.
    """

    id: str = Field(..., min_length=1, description="Stable unique identifier")
    name: str = Field(..., description="Display label")
    path: str = Field(..., description="Raw, possibly templated filesystem path")
    threshold_mb: float = Field(
        ...,
        ge=0.0,
        alias="thresholdMb",
        validation_alias=AliasChoices("thresholdMb", "threshold", "threshold_mb"),
        description="Alert threshold in (1024-based) megabytes",
    )
    enabled: bool = True
    notify: bool = True
    max_depth: Optional[int] = Field(default=None, ge=0)
    last_scan_at: Optional[int] = Field(
        default=None, description="Unix timestamp (seconds) of the last background scan"
    )

    @property
    def effective_max_depth(self) -> Optional[int]:
        return self.max_depth or None


class AppSettings(CamelModel):
    minimize_to_tray: bool = True
    check_interval_minutes: int = Field(default=60, ge=1)


class ScanResult(CamelModel):
    """Resultat af en fuldført scanning (CheckResult på kommando-fladen)."""

    size_bytes: int = Field(default=0, ge=0)
    file_count: int = Field(default=0, ge=0)
    error: Optional[str] = None

    @property
    def size_mb(self) -> float:
        return self.size_bytes / BYTES_PER_MB


class ScanProgress(CamelModel):
    """Streaming event for one scan; `last_scan_at` is only set on the terminal event."""

    monitor_id: str
    size_bytes: int = 0
    file_count: int = 0
    done: bool = False
    error: Optional[str] = None
    last_scan_at: Optional[int] = None


class ThresholdAlert(CamelModel):
    monitor_id: str
    name: str
    path: str
    current_size_bytes: int
    threshold_mb: float

    @property
    def current_size_mb(self) -> float:
        return self.current_size_bytes / BYTES_PER_MB


# Request bodies for the command surface

class CheckPathRequest(CamelModel):
    path: str
    max_depth: Optional[int] = Field(default=None, ge=0)


class StreamingCheckRequest(CamelModel):
    monitor_id: str
    path: str
    max_depth: Optional[int] = Field(default=None, ge=0)


class PathRequest(CamelModel):
    path: str


class NotificationTestRequest(CamelModel):
    id: str
    name: str
    path: str
    current_mb: float = Field(..., ge=0.0)
    threshold: float = Field(..., ge=0.0)
