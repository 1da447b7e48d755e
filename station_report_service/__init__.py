from .report import (
    StationReport,
    YearFailure,
    YearStatisticsAggregator,
    YearSummary,
    build_config,
    build_parser,
    format_station_report,
    main,
)

__all__ = [
    "StationReport",
    "YearFailure",
    "YearStatisticsAggregator",
    "YearSummary",
    "build_config",
    "build_parser",
    "format_station_report",
    "main",
]
