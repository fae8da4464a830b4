class ImparoError(Exception):
    """Base class for every error raised by the bot's own code."""


class CurriculumError(ImparoError):
    """The static plan file is missing or malformed."""


class CurriculumEntryNotFound(CurriculumError):
    """
    A week/day outside [1,12]x[1,7] reached the curriculum.

    A correctly clamped ProgressSnapshot never produces one, so this is a
    programming defect and is never swallowed.
    """

    def __init__(self, week: int, day: int):
        super().__init__(f"Curriculum entry not found: week={week} day={day}")
        self.week = week
        self.day = day


class StorageError(ImparoError):
    """The storage back-end failed for one operation."""


class GenerationError(ImparoError):
    """The content provider was unreachable or returned unusable output."""
