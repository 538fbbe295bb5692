"""Error taxonomy for geocoding, directions and route assembly."""


class RoutingError(Exception):
    """Base class for all route planning errors."""


class ProviderUnavailable(RoutingError):
    """Provider is not configured or could not be reached."""


class NotFound(RoutingError):
    """Geocoding provider answered but had no result."""


class NoRoute(RoutingError):
    """Directions provider answered but had no usable route."""


class InvalidInput(RoutingError):
    """Blank source/destination, or source equal to destination."""


class RouteCalculationError(RoutingError):
    """A route could not be assembled; no partial route is returned."""
