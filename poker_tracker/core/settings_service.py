import json
from pathlib import Path
from typing import Optional

from loguru import logger
from PyQt6.QtCore import QObject, pyqtSignal

from poker_tracker.core.errors import ImportFormatError
from poker_tracker.storage.plans_repo import PlanRepository
from poker_tracker.storage.settings_repo import SettingsRepository


class SettingsService(QObject):

    settings_changed = pyqtSignal(dict)

    def __init__(self, repo: SettingsRepository, plans: Optional[PlanRepository] = None):
        super().__init__()
        self.repo = repo
        self.plans = plans
        self.cache = repo.all()

    def get(self, key, default=None):
        return self.cache.get(key, default)

    def set(self, key: str, value):
        self.cache[key] = value
        self.repo.set(key, value)
        self.settings_changed.emit({key: value})

    def update_nested(self, key: str, **values):
        """Часткове оновлення goals / list_view_options."""
        current = dict(self.cache.get(key) or {})
        current.update(values)
        self.set(key, current)

    def reset(self):
        self.cache = self.repo.reset()
        self.settings_changed.emit(dict(self.cache))

    # ---------- Експорт / імпорт документа налаштувань ----------

    def export_document(self) -> dict:
        doc = {"settings": dict(self.cache)}
        if self.plans is not None:
            doc["plans"] = {k: p.to_dict() for k, p in self.plans.plans().items()}
            doc["offDays"] = self.plans.off_days()
        return doc

    def import_document(self, doc: dict) -> None:
        """Повна заміна: налаштування, плани й вихідні з документа."""
        if not isinstance(doc, dict):
            raise ImportFormatError("Settings document must be a JSON object")

        # старий формат: усе на верхньому рівні, плани всередині налаштувань
        settings = doc.get("settings") if isinstance(doc.get("settings"), dict) else doc
        plans = doc.get("plans", settings.get("plans", {}))
        off_days = doc.get("offDays", settings.get("offDays", {}))

        if not isinstance(plans, dict) or not isinstance(off_days, dict):
            raise ImportFormatError("'plans' and 'offDays' must be objects")

        if self.plans is not None:
            try:
                self.plans.replace_all(plans, off_days)
            except (AttributeError, TypeError, ValueError) as e:
                raise ImportFormatError(f"Bad plan data: {e}") from e

        self.cache = self.repo.replace(settings)
        logger.info("[SettingsService] Settings imported (full replace)")
        self.settings_changed.emit(dict(self.cache))

    def export_to_file(self, path: str | Path) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.export_document(), f, ensure_ascii=False, indent=2)

    def import_from_file(self, path: str | Path) -> None:
        try:
            with open(path, "r", encoding="utf-8") as f:
                doc = json.load(f)
        except json.JSONDecodeError as e:
            raise ImportFormatError(f"Settings file is not valid JSON: {e}") from e
        self.import_document(doc)
