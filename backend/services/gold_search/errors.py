"""Typed failures of the gold-location search pipeline.

Stage-local recoverable conditions never raise (empty geodata, empty evidence).
``LocationNotFound`` and ``CompletionFailure`` propagate to the caller,
``RiverNotFound`` drops a single candidate, and ``MalformedResponse`` is turned
into a renderable sentinel result by the validator.
"""


class GoldSearchError(Exception):
    """Base class for all pipeline failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NetworkError(GoldSearchError):
    """Transport failure while talking to an external service."""


class LocationNotFound(GoldSearchError):
    """The place could not be resolved, or no waterway exists around it."""

    def __init__(self, place_name: str, message: str = ""):
        self.place_name = place_name
        super().__init__(message or f"Localisation introuvable : {place_name}")


class GeodataUnavailable(NetworkError):
    """The Overpass interpreter could not be reached or returned garbage."""


class CompletionFailure(GoldSearchError):
    """The LLM completion call failed or returned nothing."""


class MalformedResponse(GoldSearchError):
    """Every parse strategy failed on the model output."""


class RiverNotFound(GoldSearchError):
    """No on-geometry coordinate could be found for a waterway name."""

    def __init__(self, river_name: str, message: str = ""):
        self.river_name = river_name
        super().__init__(message or f"Cours d'eau introuvable : {river_name}")
