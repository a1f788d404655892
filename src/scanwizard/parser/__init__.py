"""YAML parsing with line fidelity for workflow documents."""

from scanwizard.parser.loader import TrackedLoader, YAMLSafetyError
from scanwizard.parser.locations import LocationIndex, build_location_map

__all__ = [
    "LocationIndex",
    "TrackedLoader",
    "YAMLSafetyError",
    "build_location_map",
]
