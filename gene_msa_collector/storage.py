"""
File persistence for collected alignments.

Each gene ends as either an artifact file holding the raw captured text or a
failure marker next to where the artifact would have been. Genes that exhaust
their retries are additionally recorded in a JSON failure log.
"""

import json
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from .errors import StorageError, create_error_context
from .models.entities import Gene, FailureRecord
from .models.validation import MSADataValidator


UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')

FAILED_SUFFIX = "_FAILED"

FAILURE_MARKER_HEADER = "FAILED TO RETRIEVE MSA DATA"


def sanitize_gene_name(gene_name: Optional[str]) -> Optional[str]:
    """
    Make a gene name safe for use as a file stem.

    Returns None for names that cannot key an artifact (empty or "NA").
    """
    if not gene_name or not gene_name.strip() or gene_name.strip().lower() == "na":
        return None
    return UNSAFE_FILENAME_CHARS.sub("_", gene_name).strip()


@dataclass
class ArtifactScan:
    """Artifact files split by the MSA data classifier."""
    valid: List[Path] = field(default_factory=list)
    corrupted: List[Path] = field(default_factory=list)


@dataclass
class OutputSummary:
    """What a run left behind in the output directory."""
    artifacts: List[tuple] = field(default_factory=list)
    failure_markers: List[Path] = field(default_factory=list)
    failures: List[FailureRecord] = field(default_factory=list)

    @property
    def total_bytes(self) -> int:
        return sum(size for _, size in self.artifacts)


class FailureLog:
    """
    JSON array of failure records.

    The file is rewritten whole on every append: read existing → parse →
    push → write.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _read_raw(self) -> list:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            self.logger.warning(
                "Failure log unreadable, starting a new one: %s",
                str(e),
                extra={"failure_log": str(self.path)}
            )
            return []
        return data if isinstance(data, list) else []

    def append(self, record: FailureRecord) -> None:
        """Append one record, rewriting the whole file."""
        entries = self._read_raw()
        entries.append(record.model_dump())

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(entries, indent=2), encoding="utf-8")
        except OSError as e:
            raise StorageError(
                f"Could not write failure log {self.path}: {e}",
                context=create_error_context(
                    "append_failure_record",
                    gene_name=record.gene.name,
                    gene_id=record.gene.id
                ),
                original_exception=e
            ) from e

        self.logger.debug(
            "Recorded failed gene",
            extra={"failure_log": str(self.path), "gene_name": record.gene.name, "entries": len(entries)}
        )

    def load(self) -> List[FailureRecord]:
        """All parseable records in file order."""
        records = []
        for entry in self._read_raw():
            try:
                records.append(FailureRecord.model_validate(entry))
            except PydanticValidationError as e:
                self.logger.warning("Skipping malformed failure log entry: %s", str(e))
        return records

    def __len__(self) -> int:
        return len(self._read_raw())


class ArtifactStorage:
    """Writes artifacts and failure markers for genes."""

    def __init__(self,
                 output_dir: Union[str, Path],
                 failed_dir: Optional[Union[str, Path]] = None,
                 failure_log_name: str = "failed_genes.json",
                 extension: str = ".txt"):
        """
        Initialize storage.

        Args:
            output_dir: Directory for artifacts and failure markers
            failed_dir: Directory for the failure log (default: output_dir/failed)
            failure_log_name: File name of the JSON failure log
            extension: Artifact file extension
        """
        self.output_dir = Path(output_dir)
        self.failed_dir = Path(failed_dir) if failed_dir else self.output_dir / "failed"
        self.extension = extension
        self.failure_log = FailureLog(self.failed_dir / failure_log_name)
        self._placeholder_stems: Dict[Tuple[str, str], str] = {}
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @classmethod
    def from_config(cls, run_config) -> "ArtifactStorage":
        """Build storage from a RunConfig."""
        return cls(
            output_dir=run_config.output_dir,
            failed_dir=run_config.failed_dir,
            failure_log_name=run_config.failure_log_name,
            extension=run_config.artifact_extension
        )

    def ensure_directories(self) -> None:
        """Create output directories."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.failed_dir.mkdir(parents=True, exist_ok=True)
        self.logger.info(
            "Output directories ready",
            extra={"output_dir": str(self.output_dir), "failed_dir": str(self.failed_dir)}
        )

    def artifact_stem(self, gene_name: Optional[str]) -> str:
        """File stem for a gene; a timestamp placeholder when the name is unusable."""
        clean_name = sanitize_gene_name(gene_name)
        if clean_name is None:
            return f"unknown_gene_{int(time.time() * 1000)}"
        return clean_name

    def artifact_filename(self, gene_name: Optional[str]) -> str:
        return f"{self.artifact_stem(gene_name)}{self.extension}"

    def failure_marker_filename(self, gene_name: Optional[str]) -> str:
        return f"{self.artifact_stem(gene_name)}{FAILED_SUFFIX}.txt"

    def stem_for(self, gene: Gene) -> str:
        """
        File stem used for every file of ``gene``.

        A placeholder stem is generated once per gene and reused, so its
        artifact and failure marker always share a stem.
        """
        clean_name = sanitize_gene_name(gene.name)
        if clean_name is not None:
            return clean_name

        key = (gene.name, gene.id)
        if key not in self._placeholder_stems:
            stem = self.artifact_stem(gene.name)
            while stem in self._placeholder_stems.values():
                stem = f"{stem}_1"
            self._placeholder_stems[key] = stem
        return self._placeholder_stems[key]

    def artifact_path(self, gene: Gene) -> Path:
        return self.output_dir / f"{self.stem_for(gene)}{self.extension}"

    def failure_marker_path(self, gene: Gene) -> Path:
        return self.output_dir / f"{self.stem_for(gene)}{FAILED_SUFFIX}.txt"

    def save_artifact(self, gene: Gene, text: str) -> Path:
        """
        Write the captured text for a gene, replacing any earlier artifact.

        The text is written unchanged. A failure marker left by an earlier
        attempt for the same gene is removed.
        """
        path = self.artifact_path(gene)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8", newline="") as f:
                f.write(text)
        except OSError as e:
            raise StorageError(
                f"Could not write artifact {path}: {e}",
                context=create_error_context("save_artifact", gene_name=gene.name, gene_id=gene.id),
                original_exception=e
            ) from e

        stale_marker = self.failure_marker_path(gene)
        if stale_marker.exists():
            stale_marker.unlink()

        self.logger.info(
            "Saved MSA data to %s (%d characters)",
            path.name,
            len(text),
            extra={"gene_name": gene.name, "artifact": str(path), "characters": len(text)}
        )
        return path

    def save_failure_marker(self, gene: Gene) -> Path:
        """Write the failure marker for a gene."""
        path = self.failure_marker_path(gene)
        content = (
            f"{FAILURE_MARKER_HEADER}\n"
            f"Gene: {gene.name}\n"
            f"ID: {gene.id}\n"
            f"Timestamp: {datetime.now().isoformat()}"
        )
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise StorageError(
                f"Could not write failure marker {path}: {e}",
                context=create_error_context("save_failure_marker", gene_name=gene.name, gene_id=gene.id),
                original_exception=e
            ) from e

        self.logger.info("Created failed file: %s", path.name, extra={"gene_name": gene.name})
        return path

    def record_failure(self, gene: Gene, error: str) -> FailureRecord:
        """Append a failure record for a gene that exhausted its attempts."""
        record = FailureRecord(gene=gene, error=error or "Unknown error")
        self.failure_log.append(record)
        return record

    def _artifact_files(self) -> List[Path]:
        if not self.output_dir.exists():
            return []
        return sorted(
            p for p in self.output_dir.iterdir()
            if p.is_file()
            and p.suffix in (self.extension, ".txt", ".fasta")
            and not p.stem.endswith(FAILED_SUFFIX)
        )

    def scan_artifacts(self, validator: Optional[MSADataValidator] = None) -> ArtifactScan:
        """Classify every artifact file with the MSA data classifier."""
        validator = validator or MSADataValidator()
        scan = ArtifactScan()

        for path in self._artifact_files():
            try:
                text = path.read_text(encoding="utf-8")
            except UnicodeDecodeError:
                scan.corrupted.append(path)
                continue

            if validator.is_valid(text):
                scan.valid.append(path)
            else:
                scan.corrupted.append(path)

        self.logger.info(
            "Checked %d artifact files",
            len(scan.valid) + len(scan.corrupted),
            extra={"valid": len(scan.valid), "corrupted": len(scan.corrupted)}
        )
        return scan

    def remove_artifacts(self, paths: List[Path]) -> int:
        """Delete the given artifact files; returns how many were removed."""
        removed = 0
        for path in paths:
            try:
                path.unlink()
                removed += 1
                self.logger.info("Removed %s", path.name)
            except FileNotFoundError:
                self.logger.warning("Already gone: %s", path.name)
        return removed

    def summarize(self) -> OutputSummary:
        """Collect artifacts, failure markers and failure log entries."""
        summary = OutputSummary()
        summary.artifacts = [(p, p.stat().st_size) for p in self._artifact_files()]
        if self.output_dir.exists():
            summary.failure_markers = sorted(self.output_dir.glob(f"*{FAILED_SUFFIX}.txt"))
        summary.failures = self.failure_log.load()
        return summary
