class PokerTrackerError(Exception):
    """Базовий виняток застосунку."""


class ValidationError(PokerTrackerError):
    """Некоректні дані від користувача. Повідомлення показується як є."""


class StorageError(PokerTrackerError):
    pass


class ClockError(PokerTrackerError):
    pass


class ImportFormatError(PokerTrackerError):
    """Файл або рядок не відповідає формату raw-data / налаштувань."""
