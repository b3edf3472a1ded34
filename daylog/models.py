"""Result models returned by the storage engine."""

from dataclasses import asdict, dataclass, field


@dataclass(frozen=True)
class WriteReceipt:
    filename: str
    timestamp: str
    level: str
    component: str
    platform: str


@dataclass(frozen=True)
class PartitionInfo:
    filename: str
    date: str
    path: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class BatchResult:
    total: int
    successful: int = 0
    failed: int = 0
    files_written: list[str] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)
    timestamp: str = ""

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict:
        data = {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "files_written": list(self.files_written),
            "timestamp": self.timestamp,
        }
        # errors are only reported when something failed
        if self.failed:
            data["errors"] = sorted(self.errors, key=lambda e: e["index"])
        return data


@dataclass
class CleanupResult:
    deleted: int = 0
    kept: int = 0
    errors: list[dict] = field(default_factory=list)
    deleted_files: list[str] = field(default_factory=list)
    kept_files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)
