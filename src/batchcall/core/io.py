from __future__ import annotations

import json
from typing import Any, Generator, Protocol

from loguru import logger

from batchcall.core.errors import ValidationError
from batchcall.core.models import FilesConfig, JobReport
from batchcall.utils import append_to_jsonl


class ReportStore(Protocol):
    """Persistence collaborator that receives a finished JobReport."""

    def save(self, report: JobReport) -> None: ...


def stream_jsonl(filepath: str) -> Generator[Any, None, None]:
    with open(filepath, "r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            yield json.loads(line)


def read_item_refs(filepath: str) -> list[str]:
    """
    Read work item references from a JSONL file.

    Each line is either a JSON string or an object with an ``"item"`` key.

    Raises:
        ValidationError: If a line has neither shape
    """
    refs: list[str] = []
    for entry_number, entry in enumerate(stream_jsonl(filepath), start=1):
        if isinstance(entry, str):
            refs.append(entry)
        elif isinstance(entry, dict) and isinstance(entry.get("item"), str):
            refs.append(entry["item"])
        else:
            raise ValidationError(
                f"{filepath}: entry {entry_number}: expected a string or an object with an 'item' key"
            )
    return refs


class JsonlReportStore:
    """
    Store outcomes as JSONL rows.

    Successful outcomes go to ``files.save_file``; failed and cancelled ones
    go to ``files.error_file``.
    """

    def __init__(self, files: FilesConfig) -> None:
        self.files = files

    def save(self, report: JobReport) -> None:
        for outcome in report:
            row = outcome.to_dict()
            if outcome.success:
                append_to_jsonl(row, self.files.save_file)
            else:
                append_to_jsonl(row, self.files.error_file)
        logger.debug(
            f"Stored {len(report.successes)} results in {self.files.save_file} "
            f"and {len(report.failures)} errors in {self.files.error_file}"
        )
