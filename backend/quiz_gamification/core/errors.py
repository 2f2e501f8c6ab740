"""Domain exceptions raised by services and translated to HTTP by the API."""


class QuizNotFound(Exception):
    """Unknown or inactive quiz id."""


class QuestionNotFound(Exception):
    """Unknown question id on a direct lookup (hints)."""


class RecordStoreError(Exception):
    """A get/insert/patch against the record store failed."""

    def __init__(self, message: str, *, collection: str | None = None) -> None:
        super().__init__(message)
        self.collection = collection


class DeadlineExceeded(Exception):
    """The per-request pipeline deadline expired before the attempt was saved."""
