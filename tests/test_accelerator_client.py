"""Tests for configuration, padding, the CPU backend and batch dispatch."""

import json

import numpy as np
import pytest

from accelerator_client import (
    DEFAULT_KERNEL_FILE,
    ORDER_STATISTICS_KERNEL,
    REDUCE_KERNEL,
    AcceleratorError,
    BatchDispatcher,
    CPUBackend,
    DispatchError,
    StationStatsConfig,
    create_backend,
    pad_batch,
    padded_length,
)


class RecordingBackend(CPUBackend):
    """CPUBackend that records buffer allocations, releases and launches."""

    def __init__(self):
        super().__init__()
        self.allocated = []
        self.released = []
        self.launches = []

    def allocate(self, n_elements, read_only):
        buffer = super().allocate(n_elements, read_only)
        self.allocated.append(buffer)
        return buffer

    def release(self, buffer):
        super().release(buffer)
        self.released.append(buffer)

    def run_kernel(self, name, args, global_size, local_size):
        self.launches.append((name, global_size, local_size, [a.read_only for a in args]))
        super().run_kernel(name, args, global_size, local_size)


class FailingBackend(CPUBackend):
    def run_kernel(self, name, args, global_size, local_size):
        raise AcceleratorError("OUT_OF_RESOURCES")


class TestPadding:
    """Test cases for work-group padding."""

    @pytest.mark.parametrize(
        "n_elements, work_group_size, expected",
        [(1, 10, 10), (9, 10, 10), (10, 10, 10), (11, 10, 20), (25, 7, 28), (3, 1, 3)],
    )
    def test_padded_length(self, n_elements, work_group_size, expected):
        """Test that the padded length is the smallest aligned length."""
        assert padded_length(n_elements, work_group_size) == expected

    @pytest.mark.parametrize("n_elements", [1, 7, 10, 13, 99, 100])
    def test_pad_batch_invariants(self, n_elements):
        """Test alignment, real-data prefix and filler tail."""
        batch = np.arange(1, n_elements + 1, dtype=np.float32)

        padded = pad_batch(batch, 10, fill_value=-1.0)

        assert padded.size % 10 == 0
        assert n_elements <= padded.size < n_elements + 10
        np.testing.assert_array_equal(padded[:n_elements], batch)
        assert np.all(padded[n_elements:] == -1.0)
        assert padded.dtype == np.float32

    def test_pad_batch_default_filler_is_zero(self):
        """Test that the default filler is 0."""
        padded = pad_batch([5.0, 7.0], 4)

        np.testing.assert_array_equal(padded, [5.0, 7.0, 0.0, 0.0])

    def test_pad_batch_does_not_modify_input(self):
        """Test that padding copies the batch."""
        batch = np.array([1.0, 2.0, 3.0], dtype=np.float32)

        padded = pad_batch(batch, 3)
        padded[0] = 100.0

        assert batch[0] == 1.0

    def test_empty_batch(self):
        """Test that an empty batch is rejected."""
        with pytest.raises(ValueError, match="empty"):
            pad_batch([], 10)

    @pytest.mark.parametrize("work_group_size", [0, -3, 2.5, True, None])
    def test_invalid_work_group_size(self, work_group_size):
        """Test that non-positive or non-integer sizes are rejected."""
        with pytest.raises(ValueError, match="work_group_size"):
            pad_batch([1.0], work_group_size)


class TestCPUBackend:
    """Test cases for the host backend."""

    def test_rejects_unaligned_range(self):
        """Test that the global size must be a multiple of the local size."""
        backend = CPUBackend()
        source = backend.allocate(15, read_only=True)
        target = backend.allocate(15, read_only=False)

        with pytest.raises(AcceleratorError, match="INVALID_WORK_GROUP_SIZE"):
            backend.run_kernel(REDUCE_KERNEL, [source, target], 15, 10)

    def test_rejects_mismatched_buffer(self):
        """Test that buffers must match the global size."""
        backend = CPUBackend()
        source = backend.allocate(10, read_only=True)
        target = backend.allocate(20, read_only=False)

        with pytest.raises(AcceleratorError, match="INVALID_GLOBAL_WORK_SIZE"):
            backend.run_kernel(REDUCE_KERNEL, [source, target], 10, 10)

    def test_rejects_released_buffer(self):
        """Test that released buffers cannot be used."""
        backend = CPUBackend()
        buffer = backend.allocate(10, read_only=False)
        backend.release(buffer)

        with pytest.raises(AcceleratorError, match="released"):
            backend.read(buffer, 10)

    def test_rejects_read_only_output(self):
        """Test that the output argument must be writable."""
        backend = CPUBackend()
        source = backend.allocate(10, read_only=True)
        target = backend.allocate(10, read_only=True)

        with pytest.raises(AcceleratorError, match="read-only"):
            backend.run_kernel(ORDER_STATISTICS_KERNEL, [source, target], 10, 10)

    def test_rejects_unknown_kernel(self):
        """Test that kernel names are resolved."""
        backend = CPUBackend()
        source = backend.allocate(10, read_only=True)
        target = backend.allocate(10, read_only=False)

        with pytest.raises(AcceleratorError, match="INVALID_KERNEL_NAME"):
            backend.run_kernel("MinMaxSort", [source, target], 10, 10)


class TestBatchDispatcher:
    """Test cases for BatchDispatcher."""

    def test_order_statistics_output(self):
        """Test that the full padded output is sorted."""
        dispatcher = BatchDispatcher(CPUBackend(), work_group_size=10)

        ordered = dispatcher.dispatch([3.0, -1.0, 2.0], ORDER_STATISTICS_KERNEL)

        assert ordered.size == 10
        np.testing.assert_array_equal(ordered, [-1.0] + [0.0] * 7 + [2.0, 3.0])

    def test_order_statistics_with_sample_filler(self):
        """Test that a real-sample filler keeps min and max of positive data."""
        dispatcher = BatchDispatcher(CPUBackend(), work_group_size=10)

        ordered = dispatcher.dispatch([3.0, 1.5, 2.0], ORDER_STATISTICS_KERNEL, fill_value=3.0)

        assert ordered[0] == 1.5
        assert ordered[-1] == 3.0

    def test_reduce_output(self):
        """Test that element 0 holds the sum of the padded batch."""
        dispatcher = BatchDispatcher(CPUBackend(), work_group_size=4)
        batch = np.linspace(-5.0, 20.0, 23, dtype=np.float32)

        totals = dispatcher.dispatch(batch, REDUCE_KERNEL)

        assert totals.size == 24
        assert totals[0] == pytest.approx(float(batch.sum()), rel=1e-6)

    def test_buffer_lifecycle(self):
        """Test allocation sizes, argument binding, geometry and release."""
        backend = RecordingBackend()
        dispatcher = BatchDispatcher(backend, work_group_size=10)

        dispatcher.dispatch(np.ones(13, dtype=np.float32), REDUCE_KERNEL)

        assert [b.data.size for b in backend.allocated] == [20, 20]
        assert [b.read_only for b in backend.allocated] == [True, False]
        assert backend.launches == [(REDUCE_KERNEL, 20, 10, [True, False])]
        assert sorted(map(id, backend.released)) == sorted(map(id, backend.allocated))

    def test_work_group_size_override(self):
        """Test that a per-call work-group size drives padding and geometry."""
        backend = RecordingBackend()
        dispatcher = BatchDispatcher(backend, work_group_size=10)

        result = dispatcher.dispatch([1.0, 2.0, 3.0], REDUCE_KERNEL, work_group_size=2)

        assert result.size == 4
        assert backend.launches[0][1:3] == (4, 2)

    def test_runtime_failure_surfaces_as_dispatch_error(self):
        """Test that backend failures are reported and buffers released."""
        backend = FailingBackend()
        dispatcher = BatchDispatcher(backend, work_group_size=10)

        with pytest.raises(DispatchError, match="OUT_OF_RESOURCES") as excinfo:
            dispatcher.dispatch([1.0, 2.0], REDUCE_KERNEL)

        assert "Reduce" in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, AcceleratorError)

    def test_unknown_kernel_releases_buffers(self):
        """Test that a failed launch does not leak buffers."""
        backend = RecordingBackend()
        dispatcher = BatchDispatcher(backend, work_group_size=10)

        with pytest.raises(DispatchError):
            dispatcher.dispatch([1.0], "MinMaxSort")

        assert len(backend.released) == 2

    def test_empty_batch(self):
        """Test that an empty batch is rejected before any allocation."""
        backend = RecordingBackend()
        dispatcher = BatchDispatcher(backend)

        with pytest.raises(ValueError):
            dispatcher.dispatch([], REDUCE_KERNEL)

        assert backend.allocated == []

    def test_invalid_default_work_group_size(self):
        """Test that the dispatcher validates its work-group size."""
        with pytest.raises(ValueError):
            BatchDispatcher(CPUBackend(), work_group_size=0)


class TestStationStatsConfig:
    """Test cases for StationStatsConfig."""

    def test_defaults(self):
        """Test the defaults used without file or kwargs."""
        config = StationStatsConfig()

        assert config.input_file == "temp_lincolnshire_short.txt"
        assert config.kernel_file == DEFAULT_KERNEL_FILE
        assert config.work_group_size == 10
        assert config.platform_id == 0
        assert config.device_id == 0
        assert config.backend == "opencl"

    def test_from_file_with_overrides(self, tmp_path):
        """Test that kwargs override file values and None is ignored."""
        config_file = tmp_path / "run.json"
        config_file.write_text(
            json.dumps({"work_group_size": 16, "backend": "cpu", "device_id": 2})
        )

        config = StationStatsConfig(
            create_from_file=True,
            config_file=str(config_file),
            kwargs={"device_id": 1, "platform_id": None},
        )

        assert config.work_group_size == 16
        assert config.backend == "cpu"
        assert config.device_id == 1
        assert config.platform_id == 0

    def test_default_config_file_location(self, tmp_path, monkeypatch):
        """Test that the default file is read from {cwd}/config/$CONFIG_FILE."""
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "ci.json").write_text(json.dumps({"input_file": "ci.txt"}))
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CONFIG_FILE", "ci.json")

        config = StationStatsConfig(create_from_file=True)

        assert config.input_file == "ci.txt"

    def test_missing_config_file(self, tmp_path):
        """Test that an explicit missing config file fails."""
        with pytest.raises(FileNotFoundError):
            StationStatsConfig(
                create_from_file=True, config_file=str(tmp_path / "missing.json")
            )

    @pytest.mark.parametrize(
        "kwargs, parameter",
        [
            ({"work_group_size": 0}, "work_group_size"),
            ({"work_group_size": "10"}, "work_group_size"),
            ({"platform_id": -1}, "platform_id"),
            ({"device_id": 1.5}, "device_id"),
            ({"backend": "cuda"}, "backend"),
            ({"input_file": ""}, "input_file"),
        ],
    )
    def test_invalid_parameters(self, kwargs, parameter):
        """Test parameter validation."""
        with pytest.raises(ValueError, match=parameter):
            StationStatsConfig(kwargs=kwargs)

    def test_create_cpu_backend(self):
        """Test that the factory honours backend=cpu."""
        backend = create_backend(StationStatsConfig(kwargs={"backend": "cpu"}))

        assert isinstance(backend, CPUBackend)
