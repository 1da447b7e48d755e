from .station_records import (
    ObservationLoader,
    ObservationRecord,
    RecordParseError,
    Station,
    YearPartitioner,
    load_temperature_data,
)

__all__ = [
    "ObservationLoader",
    "ObservationRecord",
    "RecordParseError",
    "Station",
    "YearPartitioner",
    "load_temperature_data",
]
