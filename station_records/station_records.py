"""Station Observation Records and Year Partitioning

This module defines the observation data model for the station statistics tool
and the two host-side stages that run before any accelerator work: loading the
flat observation file into per-station record sequences, and partitioning one
station's records into per-year temperature batches.

Core Components:

Data Model:
- Station: Closed enumeration of the known weather station identifiers
- ObservationRecord: Immutable, typed view of one line of the input file

Loading:
- ObservationLoader: Parses the whitespace-delimited observation table with
  pandas, validates every numeric field and groups the records by station
- load_temperature_data: Convenience wrapper around ObservationLoader

Partitioning:
- YearPartitioner: Determines the distinct years of a station in order of first
  appearance and extracts the float32 temperature batch of each year

Input Format:
Each line holds exactly six whitespace-separated fields and there is no header:

    <station> <year> <month> <day> <time> <temperature>

    WADDINGTON 2023 01 01 0000 5.0

Lines for stations outside the Station enumeration are dropped. Any malformed
numeric field fails the whole load, whether or not its station is known.

Usage Patterns:

    stations = load_temperature_data("temp_lincolnshire_short.txt")
    partitioner = YearPartitioner()

    for station, records in stations.items():
        for year, batch in partitioner.partition(records).items():
            ...

Dependencies:
- pandas: Tokenising and column-wise validation of the observation table
- NumPy: float32 temperature batches handed to the accelerator
- Python logging: Load and partition diagnostics
"""

import csv
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray

LOGLEVEL = os.getenv("LOGLEVEL", "INFO")

UINT16_MAX = np.iinfo(np.uint16).max


class Station(str, Enum):
    """Weather stations recognised in the observation file."""

    BARKSTON_HEATH = "BARKSTON_HEATH"
    SCAMPTON = "SCAMPTON"
    WADDINGTON = "WADDINGTON"
    CRANWELL = "CRANWELL"
    CONINGSBY = "CONINGSBY"

    @classmethod
    def names(cls) -> List[str]:
        return [station.value for station in cls]


@dataclass(frozen=True)
class ObservationRecord:
    """One parsed observation.

    Calendar fields are unsigned 16-bit values and the temperature is kept at
    32-bit float precision, matching the element type of the accelerator
    buffers.
    """

    station: Station
    year: int
    month: int
    day: int
    time: int
    temperature: float


class RecordParseError(ValueError):
    """Raised when the observation file contains a malformed row."""

    pass


class ObservationLoader:
    """Observation file loader grouping records by station.

    The loader reads the complete file in one pass, validates every row and
    builds a mapping from Station to the station's records in file order. Only
    stations with at least one record appear as keys. The mapping is built
    once and treated as read-only by every later stage.

    Validation Rules:
    - Each row must have exactly six fields
    - year, month, day and time must be integers in [0, 65535]
    - temperature must be a finite float
    - Rows for unknown stations are validated, then dropped

    Attributes:
        COLUMNS (List[str]): Field names of the observation table, in file order
        INTEGER_COLUMNS (List[str]): Fields stored as unsigned 16-bit integers
        logger: Configured logger for load diagnostics

    Example:
        loader = ObservationLoader()
        stations = loader.load("temp_lincolnshire_short.txt")
        print(f"Loaded {len(stations[Station.WADDINGTON])} WADDINGTON records")
    """

    COLUMNS = ["station", "year", "month", "day", "time", "temperature"]
    INTEGER_COLUMNS = ["year", "month", "day", "time"]

    def __init__(self) -> None:
        """Initialize ObservationLoader with logging."""
        logging.basicConfig(
            level=LOGLEVEL,
            format="%(asctime)s - %(levelname)s - %(message)s",
        )
        self.logger = logging.getLogger(name=self.__class__.__name__)

    def __line_numbers(self, path: str) -> pd.Index:
        """1-based numbers of the non-blank lines, in file order.

        Blank and whitespace-only lines are skipped by read_csv, so the n-th
        table row comes from the n-th entry of this index.
        """
        with open(file=path, mode="r") as file:
            lines = [n for n, line in enumerate(file, start=1) if line.strip()]

        return pd.Index(lines, name="line")

    def __read_table(self, path: str) -> pd.DataFrame:
        """Tokenise the observation file into a string-typed DataFrame.

        Args:
            path (str): Path to the observation file.

        Returns:
            pd.DataFrame: One row per non-blank line with the six observation
                columns, indexed by the 1-based line number in the file. All
                values are still strings.

        Raises:
            FileNotFoundError: When path does not exist.
            RecordParseError: When a row has a different number of fields.
        """
        if not os.path.isfile(path):
            raise FileNotFoundError(f"Observation file not found: {path}")

        try:
            table = pd.read_csv(
                path,
                sep=r"\s+",
                header=None,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                quoting=csv.QUOTE_NONE,
            )
        except pd.errors.EmptyDataError:
            self.logger.warning(f"Observation file {path} is empty.")
            return pd.DataFrame(columns=ObservationLoader.COLUMNS)
        except pd.errors.ParserError as e:
            raise RecordParseError(f"Malformed observation file {path}: {e}") from e

        if table.shape[1] != len(ObservationLoader.COLUMNS):
            raise RecordParseError(
                f"Malformed observation file {path}. Expected {len(ObservationLoader.COLUMNS)} fields per row. Got {table.shape[1]} instead."
            )

        table.columns = ObservationLoader.COLUMNS
        table.index = self.__line_numbers(path)

        missing = (table.isna() | (table == "")).any(axis=1)
        if missing.any():
            line = int(missing.idxmax())
            raise RecordParseError(
                f"Malformed observation in line {line}: missing field(s). Expected {len(ObservationLoader.COLUMNS)} fields."
            )

        return table

    def __convert_columns(self, table: pd.DataFrame) -> pd.DataFrame:
        """Convert the numeric columns, failing on the first malformed value.

        Args:
            table (pd.DataFrame): String-typed observation table.

        Returns:
            pd.DataFrame: Table with uint16 calendar columns and a float32
                temperature column.

        Raises:
            RecordParseError: When any numeric field cannot be converted or is
                out of range.
        """
        for column in ObservationLoader.INTEGER_COLUMNS:
            values = pd.to_numeric(table[column], errors="coerce")
            invalid = (
                values.isna()
                | (values % 1 != 0)
                | (values < 0)
                | (values > UINT16_MAX)
            )
            if invalid.any():
                line = int(invalid.idxmax())
                raise RecordParseError(
                    f"Malformed {column} in line {line}. Expected an integer in [0, {UINT16_MAX}]. Got {table.at[line, column]!r} instead."
                )
            table[column] = values.astype(np.uint16)

        temperatures = pd.to_numeric(table["temperature"], errors="coerce")
        invalid = temperatures.isna() | ~np.isfinite(temperatures)
        if invalid.any():
            line = int(invalid.idxmax())
            raise RecordParseError(
                f"Malformed temperature in line {line}. Expected a finite float. Got {table.at[line, 'temperature']!r} instead."
            )
        table["temperature"] = temperatures.astype(np.float32)

        return table

    def __group_by_station(
        self, table: pd.DataFrame
    ) -> Dict[Station, List[ObservationRecord]]:
        known = table["station"].isin(Station.names())

        dropped = int((~known).sum())
        if dropped:
            self.logger.debug(f"Dropped {dropped} rows for unknown stations.")

        entries: Dict[Station, List[ObservationRecord]] = {}
        for row in table[known].itertuples(index=False):
            record = ObservationRecord(
                station=Station(row.station),
                year=int(row.year),
                month=int(row.month),
                day=int(row.day),
                time=int(row.time),
                temperature=float(row.temperature),
            )
            entries.setdefault(record.station, []).append(record)

        return entries

    def load(self, path: str) -> Dict[Station, List[ObservationRecord]]:
        """Load the observation file and group its records by station.

        Args:
            path (str): Path to the whitespace-delimited observation file.

        Returns:
            Dict[Station, List[ObservationRecord]]: Records of every known
                station present in the file, each list in file order.

        Raises:
            FileNotFoundError: When the file does not exist.
            RecordParseError: When any row is malformed.
        """
        self.logger.info(f"Loading observations from {path}...")

        table = self.__read_table(path)
        if table.empty:
            return {}

        table = self.__convert_columns(table)
        entries = self.__group_by_station(table)

        self.logger.info(
            f"Loaded {sum(len(records) for records in entries.values())} records for {len(entries)} stations."
        )

        return entries


def load_temperature_data(path: str) -> Dict[Station, List[ObservationRecord]]:
    """Load and group the observation file. See ObservationLoader.load()."""
    return ObservationLoader().load(path)


class YearPartitioner:
    """Splits one station's records into per-year temperature batches.

    Grouping is explicit (year -> samples), so a station whose records are not
    ordered by year still yields complete batches. Years are reported in order
    of first appearance, never sorted.

    Example:
        partitioner = YearPartitioner()
        batches = partitioner.partition(stations[Station.WADDINGTON])
        for year, batch in batches.items():
            print(year, batch.size)
    """

    def distinct_years(self, records: Sequence[ObservationRecord]) -> List[int]:
        """Distinct years in order of first appearance."""
        return list(dict.fromkeys(record.year for record in records))

    def extract_year_batch(
        self, records: Sequence[ObservationRecord], year: int
    ) -> NDArray[np.float32]:
        """Temperatures of every record in the given year, in file order."""
        return np.array(
            [record.temperature for record in records if record.year == year],
            dtype=np.float32,
        )

    def is_year_contiguous(self, records: Sequence[ObservationRecord]) -> bool:
        """Check whether each year's records form a single contiguous run.

        Returns:
            bool: False if any year reappears after a different year.
        """
        seen = set()
        previous = None
        for record in records:
            if record.year != previous:
                if record.year in seen:
                    return False
                seen.add(record.year)
                previous = record.year
        return True

    def partition(
        self, records: Sequence[ObservationRecord]
    ) -> Dict[int, NDArray[np.float32]]:
        """Group temperatures by year.

        Args:
            records (Sequence[ObservationRecord]): One station's records.

        Returns:
            Dict[int, NDArray[np.float32]]: Year batches keyed by year in order
                of first appearance. Empty when records is empty.
        """
        samples: Dict[int, List[float]] = {}
        for record in records:
            samples.setdefault(record.year, []).append(record.temperature)

        return {
            year: np.array(temperatures, dtype=np.float32)
            for year, temperatures in samples.items()
        }
