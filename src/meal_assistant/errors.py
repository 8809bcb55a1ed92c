"""Error types shared across services and adapters."""


class MealAssistantError(Exception):
    """Base error for the meal assistant."""


class StoreUnavailableError(MealAssistantError):
    """The store could not be reached."""


class OracleUnavailableError(MealAssistantError):
    """The language model service could not be reached."""


class MalformedOracleOutputError(MealAssistantError):
    """A structured model response failed to parse or validate."""


class StoreQueryError(MealAssistantError):
    """The store rejected a query, e.g. a constraint or bad-request error."""
