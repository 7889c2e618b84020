from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, tzinfo
from pathlib import Path
from typing import Iterable, List, Optional

from loguru import logger

from poker_tracker.core.analytics import DayAggregationEngine, compute_totals
from poker_tracker.core.export import (
    OFF_DAY_MARKER,
    RAW_HEADER,
    ExportOptions,
    build_day_table,
    build_session_table,
)
from poker_tracker.core.models import Session
from poker_tracker.services import spreadsheet
from poker_tracker.storage.session_repo import SessionRepository

RAW_KEYS = (RAW_HEADER, "rawData", "raw_data")


@dataclass
class ImportReport:
    imported: int = 0
    duplicates: int = 0
    invalid: int = 0
    skipped_rows: int = 0
    warnings: List[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        logger.warning(f"[SessionReconciler] {message}")
        self.warnings.append(message)


class SessionReconciler:
    """
    Злиття зовнішніх пакетів сесій у сховище.
    Ідентифікатор, що вже є у сховищі, завжди виграє: імпорт ідемпотентний.
    """

    def __init__(self, repo: SessionRepository):
        self.repo = repo

    # ---------- Імпорт ----------

    def import_sessions(self, candidates: Iterable, report: Optional[ImportReport] = None) -> ImportReport:
        report = report or ImportReport()
        known_ids = self.repo.ids()
        accepted: List[Session] = []

        for idx, item in enumerate(candidates):
            try:
                session = item if isinstance(item, Session) else Session.from_dict(item)
            except (ValueError, TypeError, AttributeError) as e:
                report.invalid += 1
                report.warn(f"Candidate #{idx} rejected: {e}")
                continue

            if session.id in known_ids:
                report.duplicates += 1
                continue

            known_ids.add(session.id)
            accepted.append(session)

        if accepted:
            self.repo.add_many(accepted)

        report.imported = len(accepted)
        logger.info(
            f"[SessionReconciler] Imported {report.imported}, "
            f"duplicates {report.duplicates}, invalid {report.invalid}"
        )
        return report

    def collect_from_rows(self, rows: Iterable[dict], report: ImportReport) -> List[dict]:
        """Сирі сесії з прихованої колонки кожного рядка; погані рядки пропускаються."""
        collected: List[dict] = []

        for row_no, row in enumerate(rows, start=2):
            raw = next((row[k] for k in RAW_KEYS if k in row and row[k] not in (None, "")), None)
            if raw is None or raw == OFF_DAY_MARKER:
                continue

            if not isinstance(raw, str):
                report.skipped_rows += 1
                report.warn(f"Row {row_no}: raw data is not text")
                continue

            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError as e:
                report.skipped_rows += 1
                report.warn(f"Row {row_no}: raw data is not JSON ({e.msg})")
                continue

            if not isinstance(parsed, list):
                report.skipped_rows += 1
                report.warn(f"Row {row_no}: raw data is not a JSON array")
                continue

            collected.extend(parsed)

        return collected

    def import_rows(self, rows: Iterable[dict]) -> ImportReport:
        report = ImportReport()
        candidates = self.collect_from_rows(rows, report)
        return self.import_sessions(candidates, report)

    def import_file(self, path: str | Path) -> ImportReport:
        return self.import_rows(spreadsheet.read_rows(path))


class ExportService:
    """Агрегація + декларативні опції -> .xlsx."""

    def __init__(self, aggregation: DayAggregationEngine, repo: SessionRepository, tz: Optional[tzinfo] = None):
        self.aggregation = aggregation
        self.repo = repo
        self.tz = tz

    def build_table(self, start: date, end: date, options: Optional[ExportOptions] = None):
        options = options or ExportOptions()

        if options.mode == "sessions":
            sessions = [
                s for s in self.repo.all()
                if min(start, end) <= s.start.astimezone(self.tz).date() <= max(start, end)
            ]
            return build_session_table(sessions, options, tz=self.tz)

        days = self.aggregation.summarize(start, end)
        totals = compute_totals(days) if options.show_totals else None
        return build_day_table(days, options, totals=totals, tz=self.tz)

    def export_file(self, path: str | Path, start: date, end: date, options: Optional[ExportOptions] = None) -> Path:
        return spreadsheet.write_table(self.build_table(start, end, options), path)
