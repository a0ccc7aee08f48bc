class ScoreEngineError(Exception):
    """Base class for errors raised inside the scoring engine."""

    default_message = "Ett fel uppstod."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class EntryValidationError(ScoreEngineError):
    default_message = "Ogiltig resultatregistrering."


class EntryNotFoundError(ScoreEngineError):
    default_message = "Resultatet hittades inte."


class OwnershipError(ScoreEngineError):
    default_message = "Du kan bara ändra dina egna resultat."


class RecalculationError(ScoreEngineError):
    default_message = "Statistiken kunde inte räknas om."


class ConcurrentModificationError(ScoreEngineError):
    default_message = "Resultatet ändrades samtidigt av någon annan. Försök igen."
