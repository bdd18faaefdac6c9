# Copyright (c) Syntropy Systems
"""Result files (CSV and JSON) and best-of / top-N ranking."""
from __future__ import annotations

import csv
import logging
import os
from contextlib import suppress
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import TypeAdapter, ValidationError

from bandsweep.errors import ProgressLoadError
from bandsweep.models.results import AttemptResult, Progress

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

logger = logging.getLogger(__name__)

CSV_COLUMNS = (
    "timestamp",
    "band",
    "bandCombination",
    "rsrp",
    "rsrq",
    "sinr",
    "enbId",
    "cellId",
    "downloadSpeed",
    "uploadSpeed",
    "ping",
    "testDuration",
)

_RESULTS_ADAPTER = TypeAdapter(list[AttemptResult])


def json_path_for(output: Path) -> Path:
    """The JSON twin of a CSV output path."""
    return output.with_suffix(".json")


def _replace_atomically(path: Path, write: Callable[[Path], None]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        write(tmp)
        os.replace(tmp, path)
    except OSError:
        with suppress(OSError):
            tmp.unlink()
        raise


def write_csv(results: Sequence[AttemptResult], output: Path) -> None:
    """Write one row per result in the fixed column order."""

    def _write(tmp: Path) -> None:
        with tmp.open("w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS, extrasaction="ignore")
            writer.writeheader()
            for result in results:
                writer.writerow(result.model_dump(by_alias=True))

    _replace_atomically(output, _write)


def write_json(results: Sequence[AttemptResult], output: Path) -> None:
    """Write the full-fidelity record list."""

    def _write(tmp: Path) -> None:
        _ = tmp.write_bytes(
            _RESULTS_ADAPTER.dump_json(list(results), indent=2, by_alias=True)
        )

    _replace_atomically(output, _write)


class ReportWriter:
    """Writes ``<output>.csv`` and its ``.json`` twin after every attempt."""

    output: Path

    def __init__(self, output: Path) -> None:
        self.output = output

    @property
    def json_output(self) -> Path:
        """Path of the JSON twin."""
        return json_path_for(self.output)

    def __call__(self, results: list[AttemptResult]) -> None:
        write_csv(results, self.output)
        write_json(results, self.json_output)
        logger.debug("Results saved to %s and %s", self.output, self.json_output)


def load_results(path: Path) -> list[AttemptResult]:
    """Load results from a progress file or a JSON results file."""
    try:
        raw = path.read_bytes()
    except OSError as e:
        msg = f"Could not read {path}: {e}"
        raise ProgressLoadError(msg) from e

    try:
        return _RESULTS_ADAPTER.validate_json(raw)
    except ValidationError:
        pass

    try:
        return Progress.model_validate_json(raw).results
    except (ValidationError, ValueError) as e:
        msg = f"{path} is neither a results file nor a progress file: {e}"
        raise ProgressLoadError(msg) from e


@dataclass
class RankedReport:
    """Best-of and top-N selections over a result set."""

    total: int
    measured: int
    best_download: AttemptResult | None = None
    best_upload: AttemptResult | None = None
    best_combined: AttemptResult | None = None
    best_signal: AttemptResult | None = None
    top_download: list[AttemptResult] = field(default_factory=list)
    top_upload: list[AttemptResult] = field(default_factory=list)
    top_combined: list[AttemptResult] = field(default_factory=list)


def rank_results(results: Sequence[AttemptResult], top_n: int = 5) -> RankedReport:
    """Pick the best result per criterion and the top ``top_n`` lists.

    Ties keep the earlier result. Best signal only considers results whose
    SINR parses as a number.
    """
    report = RankedReport(
        total=len(results),
        measured=sum(1 for r in results if r.combined_speed > 0),
    )
    if not results:
        return report

    def _top(key: Callable[[AttemptResult], float]) -> list[AttemptResult]:
        return sorted(results, key=key, reverse=True)[:top_n]

    report.top_download = _top(lambda r: r.download_speed)
    report.top_upload = _top(lambda r: r.upload_speed)
    report.top_combined = _top(lambda r: r.combined_speed)
    report.best_download = report.top_download[0]
    report.best_upload = report.top_upload[0]
    report.best_combined = report.top_combined[0]

    with_sinr = [r for r in results if r.sinr_value is not None]
    if with_sinr:
        report.best_signal = max(with_sinr, key=lambda r: r.sinr_value or 0.0)

    return report
