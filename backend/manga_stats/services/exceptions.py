"""Domain errors raised by the view-statistics and rankings services."""


class InvalidRankingParameterError(ValueError):
    """Unknown ranking category or period."""


class InvalidEntityTypeError(ValueError):
    def __init__(self, entity_type: str) -> None:
        super().__init__(f'Invalid entity type "{entity_type}". Must be "comic" or "chapter"')
        self.entity_type = entity_type


class EntityNotFoundError(LookupError):
    def __init__(self, entity_type: str, entity_id: int) -> None:
        super().__init__(f"{entity_type} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ViewStatisticsCalculationError(RuntimeError):
    """Counting view events for an entity failed; stored values must be kept."""

    def __init__(self, entity_type: str, entity_id: int, cause: Exception) -> None:
        super().__init__(f"{entity_type} {entity_id}: {cause}")
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.cause = cause
