class AgendaError(Exception):
    pass


class NotFoundError(AgendaError):
    pass


class ValidationError(AgendaError):
    pass


class ConflictError(AgendaError):
    pass


class StateError(AgendaError):
    pass


class AmbiguousError(AgendaError):
    def __init__(self, ref: str, count: int = 0, sample: list[str] | None = None):
        self.ref = ref
        self.count = count
        self.sample = sample or []
        count_note = f" ({count})" if count else ""
        note = f": {', '.join(self.sample)}" if self.sample else ""
        super().__init__(f"ambiguous ref '{ref}' matches multiple items{count_note}{note}")


class ReadOnlyError(StateError):
    """Mutation attempted on a projected (virtual) occurrence."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"'{item_id}' is a projected occurrence and cannot be modified")
