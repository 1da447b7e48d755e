"""Station Temperature Report Service

This module implements the batch run of the station statistics tool. It loads
the observation file, partitions every station's records by year, computes the
per-year minimum, maximum and average temperature on the selected accelerator
backend and prints one report section per station.

Report Operations:
- Parses the command line flags and builds the run configuration
- Selects the accelerator backend (OpenCL platform/device or CPU)
- Loads and validates the observation file
- For every station and year, dispatches the order-statistics and reduction
  kernels and combines their outputs into a YearSummary
- Prints each StationReport and exits with a status code

Year Statistics:
- minimum: element 0 of the order-statistics output
- maximum: last element of the order-statistics output
- average: element 0 of the reduction output divided by the unpadded sample count

The order-statistics pass pads with a real sample of the batch and the
reduction pass pads with 0, so padding never changes any of the three values.

Error Handling:
- Missing input, malformed rows, invalid configuration and kernel build
  failures abort the run with exit status 1
- A -p or -d flag without an integer value is ignored with a warning; any
  other invalid flag value aborts the run with exit status 1
- A failed dispatch skips that year, is listed in the station's report and
  makes the run exit with status 1 once every station has been processed

Usage:
    station-stats [-p <platform>] [-d <device>] [-l] [-h]
                  [-c <config.json>] [-i <observations>] [-b {opencl,cpu}]

Example:
    python -m station_report_service -b cpu -i temp_lincolnshire_short.txt

Output:
    ________________________________________________________________________

    Station: WADDINGTON
    ________________________________________________________________________

    2023 | Data points: 2 Avg: 6 Min: 5 Max: 7
"""

import argparse
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import List, Sequence

from accelerator_client import (
    ORDER_STATISTICS_KERNEL,
    REDUCE_KERNEL,
    AcceleratorError,
    BatchDispatcher,
    DispatchError,
    OpenCLBackend,
    StationStatsConfig,
    create_backend,
)
from station_records import (
    ObservationRecord,
    Station,
    YearPartitioner,
    load_temperature_data,
)

LOGLEVEL = os.getenv("LOGLEVEL", "INFO")

SEPARATOR = "_" * 72


@dataclass(frozen=True)
class YearSummary:
    year: int
    sample_count: int
    minimum: float
    maximum: float
    average: float


@dataclass(frozen=True)
class YearFailure:
    year: int
    reason: str


@dataclass
class StationReport:
    """Per-year summaries of one station, in order of first appearance."""

    station: Station
    summaries: List[YearSummary] = field(default_factory=list)
    failed_years: List[YearFailure] = field(default_factory=list)


class YearStatisticsAggregator:
    """Combines two kernel dispatches per year into a YearSummary.

    Each year batch is dispatched twice through the same BatchDispatcher, once
    to the order-statistics kernel and once to the reduction kernel. Both
    outputs have the padded length; only the unpadded sample count is used
    for the average.

    Attributes:
        dispatcher (BatchDispatcher): Dispatcher shared by every year and station
        partitioner (YearPartitioner): Splits station records into year batches
        logger: Configured logger for aggregation progress

    Example:
        aggregator = YearStatisticsAggregator(BatchDispatcher(CPUBackend()))
        report = aggregator.build_station_report(Station.WADDINGTON, records)
    """

    def __init__(self, dispatcher: BatchDispatcher) -> None:
        logging.basicConfig(
            level=LOGLEVEL,
            format="%(asctime)s - %(levelname)s - %(message)s",
        )
        self.logger = logging.getLogger(name=self.__class__.__name__)

        self.dispatcher = dispatcher
        self.partitioner = YearPartitioner()

    def summarise_year(self, year: int, batch: Sequence[float]) -> YearSummary:
        """Compute the statistics of one year batch on the accelerator.

        Args:
            year (int): Year the batch belongs to.
            batch (Sequence[float]): Non-empty, unpadded temperature samples.

        Returns:
            YearSummary: Sample count, minimum, maximum and average of batch.

        Raises:
            ValueError: When batch is empty.
            DispatchError: When either kernel dispatch fails.
        """
        sample_count = len(batch)
        if sample_count == 0:
            raise ValueError(f"Year {year} has no samples.")

        ordered = self.dispatcher.dispatch(
            batch, ORDER_STATISTICS_KERNEL, fill_value=float(batch[0])
        )
        totals = self.dispatcher.dispatch(batch, REDUCE_KERNEL, fill_value=0.0)

        return YearSummary(
            year=year,
            sample_count=sample_count,
            minimum=float(ordered[0]),
            maximum=float(ordered[-1]),
            average=float(totals[0]) / sample_count,
        )

    def build_station_report(
        self, station: Station, records: Sequence[ObservationRecord]
    ) -> StationReport:
        """Summarise every year of one station.

        Years are processed sequentially in order of first appearance. A year
        whose dispatch fails is logged, recorded in failed_years and skipped.

        Args:
            station (Station): Station the records belong to.
            records (Sequence[ObservationRecord]): The station's records in file order.

        Returns:
            StationReport: Summaries and failures of the station's years.
        """
        report = StationReport(station=station)

        self.logger.info(f"Processing {len(records)} records for {station.value}...")

        if not self.partitioner.is_year_contiguous(records):
            self.logger.warning(
                f"Records for {station.value} are not grouped by year. Years are grouped explicitly."
            )

        for year, batch in self.partitioner.partition(records).items():
            try:
                report.summaries.append(self.summarise_year(year, batch))
            except DispatchError as e:
                self.logger.error(f"Skipping {station.value} {year}: {e}")
                report.failed_years.append(YearFailure(year=year, reason=str(e)))

        return report


def format_station_report(report: StationReport) -> str:
    lines = [SEPARATOR, "", f"Station: {report.station.value}", SEPARATOR, ""]

    for summary in report.summaries:
        lines.append(
            f"{summary.year} | Data points: {summary.sample_count} Avg: {summary.average:.6g} Min: {summary.minimum:.6g} Max: {summary.maximum:.6g}"
        )

    for failure in report.failed_years:
        lines.append(f"{failure.year} | FAILED: {failure.reason}")

    lines.append("")

    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="station-stats",
        description="Per-station, per-year temperature statistics on an OpenCL accelerator.",
        add_help=False,
        exit_on_error=False,
    )
    parser.add_argument(
        "-p", dest="platform_id", nargs="?", const="", help="select platform"
    )
    parser.add_argument("-d", dest="device_id", nargs="?", const="", help="select device")
    parser.add_argument(
        "-l",
        dest="list_devices",
        action="store_true",
        help="list all platforms and devices",
    )
    parser.add_argument(
        "-h", dest="show_help", action="store_true", help="print this message"
    )
    parser.add_argument("-c", "--config", dest="config_file", help="JSON config file")
    parser.add_argument("-i", "--input", dest="input_file", help="observation file")
    parser.add_argument(
        "-b",
        "--backend",
        dest="backend",
        choices=StationStatsConfig.BACKENDS,
        help="accelerator backend",
    )
    return parser


def parse_index_flag(flag: str, value: str | None) -> int | None:
    """Convert a -p or -d value to an index.

    A flag given without a value, or with a value that is not an integer, is
    ignored with a warning so the configured index applies.

    Returns:
        int | None: The index, or None when the flag is absent or ignored.
    """
    if value is None:
        return None

    try:
        return int(value)
    except ValueError:
        logging.getLogger(name="Station Report Service").warning(
            f"Ignoring {flag} {value!r}. Expected an integer index."
        )
        return None


def build_config(args: argparse.Namespace) -> StationStatsConfig:
    """Build the run configuration from flags and an optional config file.

    An explicit --config file is required to exist. Without one, the default
    {cwd}/config/{CONFIG_FILE or config.json} is used when present. Flags
    override file values.
    """
    kwargs = {
        "input_file": args.input_file,
        "platform_id": parse_index_flag("-p", args.platform_id),
        "device_id": parse_index_flag("-d", args.device_id),
        "backend": args.backend,
    }

    if args.config_file:
        return StationStatsConfig(
            create_from_file=True, config_file=args.config_file, kwargs=kwargs
        )

    default_config_file = os.path.join(
        os.getcwd(), "config", os.getenv("CONFIG_FILE", "config.json")
    )
    if os.path.isfile(default_config_file):
        return StationStatsConfig(create_from_file=True, kwargs=kwargs)

    return StationStatsConfig(kwargs=kwargs)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the station report and return the process exit status."""
    logging.basicConfig(
        level=LOGLEVEL,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    logger = logging.getLogger(name="Station Report Service")

    parser = build_parser()
    try:
        args, unknown = parser.parse_known_args(argv)
    except argparse.ArgumentError as e:
        logger.error(f"Invalid command line: {e}")
        parser.print_usage(file=sys.stderr)
        return 1

    if unknown:
        logger.warning(f"Ignoring unrecognised arguments: {unknown}")

    if args.show_help:
        parser.print_help(file=sys.stderr)

    if args.list_devices:
        try:
            print(OpenCLBackend.list_platforms_devices())
        except AcceleratorError as e:
            logger.error(f"Cannot list platforms: {e}")

    try:
        config = build_config(args)
        backend = create_backend(config)

        print(f"Running on {backend.describe()}")

        stations = load_temperature_data(config.input_file)

        aggregator = YearStatisticsAggregator(
            BatchDispatcher(backend, work_group_size=config.work_group_size)
        )

        failed_years = 0
        for station in Station:
            records = stations.get(station)
            if not records:
                continue

            report = aggregator.build_station_report(station, records)
            failed_years += len(report.failed_years)

            print(format_station_report(report))

    except (OSError, ValueError, AcceleratorError):
        logger.exception("An error occurred during the station report:")
        return 1

    if failed_years:
        logger.error(f"Station report finished with {failed_years} failed year(s).")
        return 1

    logger.info("Station report completed successfully!")

    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
