"""Basic tests for station statistics components."""

import pytest


class TestStationRecords:
    """Test cases for station records."""

    def test_station_records_import(self):
        """Test that station_records can be imported."""
        import station_records

        assert station_records.Station.WADDINGTON.value == "WADDINGTON"

    def test_known_stations(self):
        """Test that exactly the five known stations are enumerated."""
        from station_records import Station

        assert Station.names() == [
            "BARKSTON_HEATH",
            "SCAMPTON",
            "WADDINGTON",
            "CRANWELL",
            "CONINGSBY",
        ]


class TestAcceleratorClient:
    """Test cases for accelerator client."""

    def test_accelerator_client_import(self):
        """Test that accelerator_client can be imported."""
        import accelerator_client

        assert accelerator_client.ORDER_STATISTICS_KERNEL == "OrderStatistics"
        assert accelerator_client.REDUCE_KERNEL == "Reduce"

    def test_kernel_source_is_packaged(self):
        """Test that the kernel source ships with the package."""
        import os

        from accelerator_client import DEFAULT_KERNEL_FILE

        assert os.path.isfile(DEFAULT_KERNEL_FILE)
        with open(DEFAULT_KERNEL_FILE) as file:
            source = file.read()
        assert "__kernel void OrderStatistics" in source
        assert "__kernel void Reduce" in source


class TestStationReportService:
    """Test cases for the report service."""

    def test_report_service_import(self):
        """Test that station_report_service can be imported."""
        import station_report_service

        assert callable(station_report_service.main)


@pytest.mark.parametrize("flag", ["-p", "-d"])
def test_index_flags_are_recognised(flag):
    """Test that platform and device flags are consumed by the parser."""
    from station_report_service import build_parser

    args, unknown = build_parser().parse_known_args([flag, "2"])

    assert unknown == []
    assert (args.platform_id if flag == "-p" else args.device_id) == "2"
