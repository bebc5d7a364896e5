"""Exception hierarchy for validation, search, planning and data loading."""


class PlanningError(Exception):
    """Base class for every error surfaced by a route planning query."""

    message = "Route planning failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        super().__init__(f"{self.message}: {detail}" if detail else self.message)


# -- Validation ---------------------------------------------------------------

class ValidationError(PlanningError):
    message = "Geographic validation error"


class InvalidCoordinates(ValidationError):
    message = "Invalid coordinates"


class OutsideCountry(ValidationError):
    message = "Point outside country boundaries"


class DepartmentNotFound(ValidationError):
    message = "Department not found"


class GeometryError(ValidationError):
    message = "Geometry error"


# -- Search -------------------------------------------------------------------

class SearchError(PlanningError):
    message = "Search error"


class NoRoutesNearOrigin(SearchError):
    message = "No routes found near origin"


class NoRoutesNearDestination(SearchError):
    message = "No routes found near destination"


class NoValidPath(SearchError):
    message = "No valid path found"


class MaxTransfersExceeded(SearchError):
    message = "Max transfers exceeded"


class DistanceError(SearchError):
    message = "Distance calculation error"


class CacheError(SearchError):
    message = "Cache error"


# -- Planning -----------------------------------------------------------------

class ConfigError(PlanningError):
    message = "Configuration error"


class NoValidRoutes(PlanningError):
    message = "No valid routes found"


# -- Ingestion ----------------------------------------------------------------

class LoaderError(Exception):
    """Fatal dataset loading failure; the service must not start."""


class LoaderIOError(LoaderError):
    pass


class LoaderJSONError(LoaderError):
    pass


class GeoJSONError(LoaderError):
    pass


class InvalidDataError(LoaderError):
    pass
