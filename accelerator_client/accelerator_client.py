"""Accelerator Client Library for Batch Kernel Dispatch

This module provides the accelerator side of the station statistics tool. It
owns the run configuration, the accelerator backends and the batch dispatcher
that pads a temperature batch to a work-group-aligned size, moves it into
accelerator memory, runs a named kernel over it and reads the result back.

Core Components:

Configuration Management:
- StationStatsConfig: Run configuration from a JSON file, kwargs or both
- Parameter validation with defaults for every field

Accelerator Backends:
- AcceleratorBackend: Abstract capability (allocate, write, fill, run, read, release)
- OpenCLBackend: pyopencl context, command queue and kernel program on a
  selected platform/device
- CPUBackend: NumPy implementation of the same capability and kernel contracts,
  used where no accelerator is present and as the test double
- create_backend: Backend factory driven by StationStatsConfig

Batch Dispatch:
- pad_batch: Work-group alignment of a batch
- BatchDispatcher: Buffer lifecycle, argument binding and kernel invocation

Kernel Contracts:

Both kernels take a read-only input buffer (argument 0) and a read-write output
buffer (argument 1) of equal element count, and run over a one-dimensional
range equal to that count split into work-groups of work_group_size.

- OrderStatistics: output holds the input sorted in ascending order, so
  output[0] is the minimum and output[-1] the maximum of the padded batch.
- Reduce: output[0] holds the sum of the padded batch. The output buffer must
  be zero-filled before the kernel runs.

Neither kernel knows the unpadded length. Callers choose a filler that is
neutral for the kernel they invoke (see BatchDispatcher.dispatch()).

Usage Patterns:

    config = StationStatsConfig(create_from_file=True)
    backend = create_backend(config)
    dispatcher = BatchDispatcher(backend, work_group_size=config.work_group_size)

    ordered = dispatcher.dispatch(batch, ORDER_STATISTICS_KERNEL, fill_value=batch[0])
    totals = dispatcher.dispatch(batch, REDUCE_KERNEL)

Error Handling:
- KernelBuildError: Kernel source failed to compile; build status, options
  and log are logged before raising
- DispatchError: Any runtime failure during allocation, transfer or execution
- ValueError: Invalid configuration or dispatch preconditions

Dependencies:
- pyopencl: OpenCL platform discovery, buffers, programs and kernel execution
- NumPy: Host-side buffers and the CPU kernel implementations
- Python logging: Backend selection and dispatch diagnostics
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import InitVar, dataclass, field
from typing import Any, Callable, ClassVar, Dict, List, Sequence

import numpy as np
import pyopencl as cl
from numpy.typing import NDArray

LOGLEVEL = os.getenv("LOGLEVEL", "INFO")

ORDER_STATISTICS_KERNEL = "OrderStatistics"
REDUCE_KERNEL = "Reduce"

DEFAULT_KERNEL_FILE = os.path.join(os.path.dirname(__file__), "kernels.cl")


class AcceleratorError(RuntimeError):
    """Base class for accelerator failures."""

    pass


class KernelBuildError(AcceleratorError):
    """Raised when the kernel program cannot be built for the selected device."""

    pass


class DispatchError(AcceleratorError):
    """Raised when a batch dispatch fails at runtime."""

    pass


@dataclass
class StationStatsConfig:
    """Configuration class for the station statistics run.

    This dataclass manages every parameter of a run: where the observations and
    the kernel source live, the work-group size used for padding and dispatch,
    and which accelerator backend, platform and device to use. It supports
    initialization from a JSON configuration file, from kwargs, or from a file
    with kwargs overrides. Fields absent from both sources take DEFAULTS.

    Attributes:
        input_file (str): Path to the whitespace-delimited observation file
        kernel_file (str): Path to the OpenCL kernel source
        work_group_size (int): Work-group size for padding and dispatch (>0)
        platform_id (int): OpenCL platform index (>=0)
        device_id (int): OpenCL device index on the platform (>=0)
        backend (str): "opencl" or "cpu"

    Configuration File Schema:
        {
            "input_file": "temp_lincolnshire_short.txt",
            "kernel_file": "/path/to/kernels.cl",
            "work_group_size": 10,
            "platform_id": 0,
            "device_id": 0,
            "backend": "opencl"
        }

    Example:
        From configuration file:\n
        config = StationStatsConfig(create_from_file=True)

        From kwargs only:\n
        config = StationStatsConfig(kwargs={"backend": "cpu", "work_group_size": 16})
    """

    DEFAULTS: ClassVar[Dict[str, Any]] = {
        "input_file": "temp_lincolnshire_short.txt",
        "kernel_file": DEFAULT_KERNEL_FILE,
        "work_group_size": 10,
        "platform_id": 0,
        "device_id": 0,
        "backend": "opencl",
    }
    BACKENDS: ClassVar[List[str]] = ["opencl", "cpu"]

    input_file: str = field(init=False)
    kernel_file: str = field(init=False)
    work_group_size: int = field(init=False)
    platform_id: int = field(init=False)
    device_id: int = field(init=False)
    backend: str = field(init=False)
    create_from_file: InitVar[bool] = field(default=False)
    config_file: InitVar[str | None] = field(default=None)
    kwargs: InitVar[Dict[str, Any] | None] = field(default=None)

    def __post_init__(
        self,
        create_from_file: bool,
        config_file: str | None,
        kwargs: Dict[str, Any] | None,
    ):
        """Initialize StationStatsConfig from defaults, file and kwargs.

        Args:
            create_from_file (bool): Whether to load a JSON configuration file.
            config_file (str | None): Path to the JSON file. If None and
                create_from_file=True, uses {cwd}/config/{CONFIG_FILE env var or config.json}
            kwargs (Dict[str, Any] | None): Parameter values overriding the
                defaults and the file. None values are ignored.

        Raises:
            FileNotFoundError: When the configuration file does not exist.
            ValueError: When any parameter fails validation.
        """
        parameters = dict(StationStatsConfig.DEFAULTS)

        if create_from_file:
            if not config_file:
                config_file = os.path.join(
                    os.getcwd(),
                    "config",
                    os.getenv("CONFIG_FILE", "config.json"),
                )

            parameters.update(self.__get_config(config_file))

        if kwargs:
            parameters.update(
                {key: value for key, value in kwargs.items() if value is not None}
            )

        self.__set_path("input_file", parameters.get("input_file"))
        self.__set_path("kernel_file", parameters.get("kernel_file"))
        self.__set_work_group_size(parameters.get("work_group_size"))
        self.__set_index("platform_id", parameters.get("platform_id"))
        self.__set_index("device_id", parameters.get("device_id"))
        self.__set_backend(parameters.get("backend"))

    def __get_config(self, config_file: str) -> Dict[str, Any]:
        """Load and parse JSON configuration file.

        Args:
            config_file (str): Path to the JSON configuration file.

        Returns:
            Dict[str, Any]: Parsed configuration dictionary.

        Raises:
            ValueError: When the file does not hold a JSON object.
        """
        with open(file=config_file, mode="r") as file:
            config = json.load(fp=file)

        if not isinstance(config, dict):
            raise ValueError(
                f"Config file {config_file} must hold a JSON object. Received {type(config)} instead."
            )

        return config

    def __set_path(self, name: str, value: Any) -> None:
        if isinstance(value, str) and value:
            setattr(self, name, value)
        else:
            raise ValueError(
                f"Parameter {name} must be a non-empty path. Expected {str} Received {type(value)} instead."
            )

    def __set_work_group_size(self, work_group_size: Any) -> None:
        """Validate and set the work_group_size attribute.

        Raises:
            ValueError: When work_group_size is not an integer or is not >0.
        """
        if isinstance(work_group_size, int) and not isinstance(work_group_size, bool):
            if work_group_size > 0:
                self.work_group_size = work_group_size
            else:
                raise ValueError(
                    f"Parameter work_group_size must be >0. Got {work_group_size}"
                )
        else:
            raise ValueError(
                f"Parameter work_group_size must be an integer. Expected {int} Received {type(work_group_size)} instead."
            )

    def __set_index(self, name: str, value: Any) -> None:
        if isinstance(value, int) and not isinstance(value, bool):
            if value >= 0:
                setattr(self, name, value)
            else:
                raise ValueError(f"Parameter {name} must be >=0. Got {value}")
        else:
            raise ValueError(
                f"Parameter {name} must be an integer. Expected {int} Received {type(value)} instead."
            )

    def __set_backend(self, backend: Any) -> None:
        if backend in StationStatsConfig.BACKENDS:
            self.backend = backend
        else:
            raise ValueError(
                f"Parameter backend must be one of {StationStatsConfig.BACKENDS}. Got {backend!r}"
            )


class AcceleratorBackend(ABC):
    """Abstract accelerator capability used by BatchDispatcher.

    A backend exposes the minimal set of operations a dispatch needs: buffer
    allocation, host-to-device transfer, buffer fill, kernel invocation over a
    one-dimensional range, device-to-host transfer and buffer release. Buffers
    are opaque handles owned by the backend that created them. All operations
    block until complete.

    Subclasses:
        OpenCLBackend: Executes kernels on an OpenCL device via pyopencl
        CPUBackend: Executes the kernel contracts with NumPy on the host
    """

    def __init__(self) -> None:
        logging.basicConfig(
            level=LOGLEVEL,
            format="%(asctime)s - %(levelname)s - %(message)s",
        )
        self.logger = logging.getLogger(name=self.__class__.__name__)

    @abstractmethod
    def allocate(self, n_elements: int, read_only: bool) -> Any:
        """Allocate a float32 buffer of n_elements."""
        pass

    @abstractmethod
    def write(self, buffer: Any, data: NDArray[np.float32]) -> None:
        """Copy data into buffer. data.size must equal the buffer length."""
        pass

    @abstractmethod
    def fill(self, buffer: Any, value: float) -> None:
        pass

    @abstractmethod
    def run_kernel(
        self, name: str, args: Sequence[Any], global_size: int, local_size: int
    ) -> None:
        """Run kernel name with args bound in order, and wait for completion."""
        pass

    @abstractmethod
    def read(self, buffer: Any, n_elements: int) -> NDArray[np.float32]:
        pass

    @abstractmethod
    def release(self, buffer: Any) -> None:
        pass

    @abstractmethod
    def describe(self) -> str:
        """Human-readable name of the platform and device in use."""
        pass


class OpenCLBackend(AcceleratorBackend):
    """OpenCL backend built on pyopencl.

    Creates a context on one device of the selected platform, a single command
    queue shared by every dispatch, and the kernel program compiled from the
    kernel source file with -DWORK_GROUP_SIZE set to the configured work-group
    size (the reduction kernel sizes its local scratch memory with it).

    Attributes:
        platform: Selected pyopencl Platform
        device: Selected pyopencl Device
        context: pyopencl Context on the device
        queue: In-order CommandQueue used by every operation
        program: Built kernel Program

    Example:
        backend = OpenCLBackend(platform_id=0, device_id=0)
        print(backend.describe())
    """

    def __init__(
        self,
        platform_id: int = 0,
        device_id: int = 0,
        kernel_file: str = DEFAULT_KERNEL_FILE,
        work_group_size: int = 10,
    ) -> None:
        """Select the device, create context and queue, and build the kernels.

        Args:
            platform_id (int): Index into cl.get_platforms().
            device_id (int): Index into the platform's device list.
            kernel_file (str): Path to the OpenCL kernel source.
            work_group_size (int): Value passed as -DWORK_GROUP_SIZE.

        Raises:
            AcceleratorError: When the platform or device index is out of range.
            FileNotFoundError: When kernel_file does not exist.
            KernelBuildError: When the program fails to build.
        """
        super().__init__()

        try:
            platforms = cl.get_platforms()
        except cl.Error as e:
            raise AcceleratorError(f"No OpenCL platform available: {e}") from e

        if not 0 <= platform_id < len(platforms):
            raise AcceleratorError(
                f"Platform {platform_id} not found. {len(platforms)} platform(s) available."
            )
        self.platform = platforms[platform_id]

        devices = self.platform.get_devices()
        if not 0 <= device_id < len(devices):
            raise AcceleratorError(
                f"Device {device_id} not found on platform {self.platform.name}. {len(devices)} device(s) available."
            )
        self.device = devices[device_id]

        try:
            self.context = cl.Context(devices=[self.device])
            self.queue = cl.CommandQueue(self.context)
        except cl.Error as e:
            raise AcceleratorError(
                f"Failed to create a context on {self.device.name}: {e}"
            ) from e

        self.work_group_size = work_group_size

        self.logger.info(f"Setting up {self.describe()}")

        self.program = self.__build_program(kernel_file, work_group_size)

    def __build_program(self, kernel_file: str, work_group_size: int) -> cl.Program:
        """Compile the kernel source for the selected device.

        On failure the build status, options and log are logged before
        KernelBuildError is raised.
        """
        with open(file=kernel_file, mode="r") as file:
            source = file.read()

        options = [f"-DWORK_GROUP_SIZE={work_group_size}"]
        program = cl.Program(self.context, source)

        try:
            program.build(options=options)
        except cl.Error as e:
            self.logger.error(
                f"Build Status: {program.get_build_info(self.device, cl.program_build_info.STATUS)}"
            )
            self.logger.error(
                f"Build Options: {program.get_build_info(self.device, cl.program_build_info.OPTIONS)}"
            )
            self.logger.error(
                f"Build Log: {program.get_build_info(self.device, cl.program_build_info.LOG)}"
            )
            raise KernelBuildError(
                f"Failed to build {kernel_file} for {self.device.name}: {e}"
            ) from e

        self.logger.info(f"Built kernels from {kernel_file} with options {options}")

        return program

    @staticmethod
    def list_platforms_devices() -> str:
        """Render every OpenCL platform and its devices.

        Returns:
            str: One line per platform followed by one indented line per device.
        """
        try:
            platforms = cl.get_platforms()
        except cl.Error as e:
            raise AcceleratorError(f"No OpenCL platform available: {e}") from e

        lines = [f"Found {len(platforms)} platform(s):"]
        for platform_idx, platform in enumerate(platforms):
            lines.append(
                f"Platform {platform_idx}, {platform.name}, {platform.version}, {platform.vendor}"
            )
            for device_idx, device in enumerate(platform.get_devices()):
                lines.append(
                    f"\tDevice {device_idx}, {device.name}, {cl.device_type.to_string(device.type)}"
                )
        return "\n".join(lines)

    @property
    def platform_name(self) -> str:
        return self.platform.name

    @property
    def device_name(self) -> str:
        return self.device.name

    def describe(self) -> str:
        return f"{self.platform_name}, {self.device_name}"

    def allocate(self, n_elements: int, read_only: bool) -> cl.Buffer:
        flags = cl.mem_flags.READ_ONLY if read_only else cl.mem_flags.READ_WRITE
        return cl.Buffer(
            self.context, flags, size=n_elements * np.dtype(np.float32).itemsize
        )

    def write(self, buffer: cl.Buffer, data: NDArray[np.float32]) -> None:
        cl.enqueue_copy(
            self.queue, buffer, np.ascontiguousarray(data, dtype=np.float32), is_blocking=True
        )

    def fill(self, buffer: cl.Buffer, value: float) -> None:
        cl.enqueue_fill_buffer(self.queue, buffer, np.float32(value), 0, buffer.size).wait()

    def run_kernel(
        self, name: str, args: Sequence[cl.Buffer], global_size: int, local_size: int
    ) -> None:
        if local_size > self.work_group_size:
            raise AcceleratorError(
                f"INVALID_WORK_GROUP_SIZE. Kernels were built for work-groups of at most {self.work_group_size}. Got {local_size}."
            )

        kernel = cl.Kernel(self.program, name)
        for idx, arg in enumerate(args):
            kernel.set_arg(idx, arg)

        cl.enqueue_nd_range_kernel(
            self.queue, kernel, (global_size,), (local_size,)
        ).wait()

    def read(self, buffer: cl.Buffer, n_elements: int) -> NDArray[np.float32]:
        result = np.empty(n_elements, dtype=np.float32)
        cl.enqueue_copy(self.queue, result, buffer, is_blocking=True)
        return result

    def release(self, buffer: cl.Buffer) -> None:
        buffer.release()


@dataclass
class CPUBuffer:
    """Host buffer handle issued by CPUBackend."""

    data: NDArray[np.float32]
    read_only: bool
    released: bool = False


class CPUBackend(AcceleratorBackend):
    """NumPy backend implementing the accelerator capability on the host.

    Geometry and buffer checks mirror what the OpenCL runtime enforces, so a
    dispatch that succeeds here also satisfies the device's launch rules:
    - local_size must be >0 and divide global_size
    - every kernel argument must be a live buffer of global_size elements
    - read-only buffers may only be written from the host

    Kernel implementations follow the contracts documented at module level.
    The reduction accumulates one partial sum per work-group into output[0],
    as the device kernel does.

    Example:
        backend = CPUBackend()
        dispatcher = BatchDispatcher(backend)
    """

    def __init__(self) -> None:
        super().__init__()

        self.kernels: Dict[str, Callable[[CPUBuffer, CPUBuffer, int], None]] = {
            ORDER_STATISTICS_KERNEL: self.__order_statistics,
            REDUCE_KERNEL: self.__reduce,
        }

        self.logger.info(f"Setting up {self.describe()}")

    def describe(self) -> str:
        return "NumPy host backend, CPU"

    def __check_live(self, buffer: CPUBuffer) -> None:
        if not isinstance(buffer, CPUBuffer):
            raise AcceleratorError(
                f"INVALID_MEM_OBJECT. Expected {CPUBuffer} Got {type(buffer)} instead."
            )
        if buffer.released:
            raise AcceleratorError("INVALID_MEM_OBJECT. Buffer has been released.")

    def allocate(self, n_elements: int, read_only: bool) -> CPUBuffer:
        if n_elements <= 0:
            raise AcceleratorError(
                f"INVALID_BUFFER_SIZE. Cannot allocate {n_elements} elements."
            )
        return CPUBuffer(data=np.empty(n_elements, dtype=np.float32), read_only=read_only)

    def write(self, buffer: CPUBuffer, data: NDArray[np.float32]) -> None:
        self.__check_live(buffer)
        if data.size != buffer.data.size:
            raise AcceleratorError(
                f"INVALID_VALUE. Write of {data.size} elements into a buffer of {buffer.data.size}."
            )
        buffer.data[:] = data

    def fill(self, buffer: CPUBuffer, value: float) -> None:
        self.__check_live(buffer)
        buffer.data.fill(np.float32(value))

    def run_kernel(
        self, name: str, args: Sequence[CPUBuffer], global_size: int, local_size: int
    ) -> None:
        if name not in self.kernels:
            raise AcceleratorError(f"INVALID_KERNEL_NAME. Unknown kernel {name!r}.")
        if local_size <= 0 or global_size % local_size != 0:
            raise AcceleratorError(
                f"INVALID_WORK_GROUP_SIZE. Global size {global_size} is not a multiple of local size {local_size}."
            )
        if len(args) != 2:
            raise AcceleratorError(
                f"INVALID_KERNEL_ARGS. Kernel {name} takes 2 arguments. Got {len(args)}."
            )
        for arg in args:
            self.__check_live(arg)
            if arg.data.size != global_size:
                raise AcceleratorError(
                    f"INVALID_GLOBAL_WORK_SIZE. Buffer of {arg.data.size} elements for a range of {global_size}."
                )
        if args[1].read_only:
            raise AcceleratorError("INVALID_MEM_OBJECT. Output buffer is read-only.")

        self.kernels[name](args[0], args[1], local_size)

    def __order_statistics(
        self, source: CPUBuffer, target: CPUBuffer, local_size: int
    ) -> None:
        target.data[:] = np.sort(source.data, kind="stable")

    def __reduce(self, source: CPUBuffer, target: CPUBuffer, local_size: int) -> None:
        group_sums = source.data.reshape(-1, local_size).sum(axis=1, dtype=np.float32)
        for group_sum in group_sums:
            target.data[0] += group_sum

    def read(self, buffer: CPUBuffer, n_elements: int) -> NDArray[np.float32]:
        self.__check_live(buffer)
        return buffer.data[:n_elements].copy()

    def release(self, buffer: CPUBuffer) -> None:
        self.__check_live(buffer)
        buffer.released = True


def create_backend(config: StationStatsConfig) -> AcceleratorBackend:
    """Build the backend selected by config.backend."""
    if config.backend == "cpu":
        return CPUBackend()

    return OpenCLBackend(
        platform_id=config.platform_id,
        device_id=config.device_id,
        kernel_file=config.kernel_file,
        work_group_size=config.work_group_size,
    )


def padded_length(n_elements: int, work_group_size: int) -> int:
    """Smallest multiple of work_group_size that is >= n_elements."""
    remainder = n_elements % work_group_size
    if remainder:
        return n_elements + work_group_size - remainder
    return n_elements


def pad_batch(
    batch: Sequence[float] | NDArray,
    work_group_size: int,
    fill_value: float = 0.0,
) -> NDArray[np.float32]:
    """Extend a batch with fill_value to a multiple of work_group_size.

    Args:
        batch (Sequence[float] | NDArray): Non-empty batch of samples.
        work_group_size (int): Positive work-group size.
        fill_value (float, optional): Filler element. Defaults to 0.0.

    Returns:
        NDArray[np.float32]: New float32 array whose first len(batch) elements
            are the batch and whose remaining elements equal fill_value.

    Raises:
        ValueError: When batch is empty or work_group_size is not a positive
            integer.
    """
    if (
        not isinstance(work_group_size, (int, np.integer))
        or isinstance(work_group_size, bool)
        or work_group_size <= 0
    ):
        raise ValueError(
            f"work_group_size must be a positive integer. Got {work_group_size!r}"
        )

    samples = np.asarray(batch, dtype=np.float32).ravel()
    if samples.size == 0:
        raise ValueError("Cannot dispatch an empty batch.")

    padded = np.full(
        padded_length(samples.size, int(work_group_size)), fill_value, dtype=np.float32
    )
    padded[: samples.size] = samples

    return padded


class BatchDispatcher:
    """Runs one named kernel over one padded batch.

    Every dispatch follows the same buffer lifecycle on the injected backend:

    1. Pad the batch to a multiple of the work-group size
    2. Allocate a read-only input and a read-write output buffer of the padded length
    3. Zero-fill the output buffer and write the padded batch to the input buffer
    4. Bind input and output as kernel arguments 0 and 1
    5. Run the kernel over the padded length in work-groups of work_group_size
    6. Read the full output buffer back
    7. Release both buffers

    Dispatches are synchronous; no buffer outlives the call that created it.

    Attributes:
        backend (AcceleratorBackend): Accelerator capability used for every dispatch
        work_group_size (int): Default work-group size
        logger: Configured logger for dispatch diagnostics

    Example:
        dispatcher = BatchDispatcher(CPUBackend(), work_group_size=10)
        totals = dispatcher.dispatch([5.0, 7.0], REDUCE_KERNEL)
        assert totals.size == 10 and totals[0] == 12.0
    """

    def __init__(self, backend: AcceleratorBackend, work_group_size: int = 10) -> None:
        logging.basicConfig(
            level=LOGLEVEL,
            format="%(asctime)s - %(levelname)s - %(message)s",
        )
        self.logger = logging.getLogger(name=self.__class__.__name__)

        if (
            not isinstance(work_group_size, int)
            or isinstance(work_group_size, bool)
            or work_group_size <= 0
        ):
            raise ValueError(
                f"work_group_size must be a positive integer. Got {work_group_size!r}"
            )

        self.backend = backend
        self.work_group_size = work_group_size

    def dispatch(
        self,
        batch: Sequence[float] | NDArray,
        kernel_name: str,
        work_group_size: int | None = None,
        fill_value: float = 0.0,
    ) -> NDArray[np.float32]:
        """Pad batch, run kernel_name over it and return the full output.

        The filler must be neutral for the kernel: 0 for the reduction, and any
        real sample of the batch for the order statistics.

        Args:
            batch (Sequence[float] | NDArray): Non-empty batch of samples.
            kernel_name (str): Kernel entry point to invoke.
            work_group_size (int | None, optional): Overrides the dispatcher's
                work-group size for this call.
            fill_value (float, optional): Padding element. Defaults to 0.0.

        Returns:
            NDArray[np.float32]: Output buffer of the padded length.

        Raises:
            ValueError: When batch is empty or work_group_size is invalid.
            DispatchError: When the backend fails to allocate, transfer or execute.
        """
        if work_group_size is None:
            work_group_size = self.work_group_size

        padded = pad_batch(batch, work_group_size, fill_value)
        n_elements = padded.size
        n_samples = np.asarray(batch).size

        self.logger.debug(
            f"Dispatching {kernel_name}: {n_samples} samples padded to {n_elements}, {n_elements // work_group_size} work-groups of {work_group_size}"
        )

        input_buffer = None
        output_buffer = None
        try:
            input_buffer = self.backend.allocate(n_elements, read_only=True)
            output_buffer = self.backend.allocate(n_elements, read_only=False)

            self.backend.write(input_buffer, padded)
            self.backend.fill(output_buffer, 0.0)

            self.backend.run_kernel(
                kernel_name,
                [input_buffer, output_buffer],
                global_size=n_elements,
                local_size=work_group_size,
            )

            return self.backend.read(output_buffer, n_elements)
        except (AcceleratorError, cl.Error) as e:
            raise DispatchError(
                f"Kernel {kernel_name} failed on a batch of {n_samples} samples padded to {n_elements}: {e}"
            ) from e
        finally:
            for buffer in (output_buffer, input_buffer):
                if buffer is not None:
                    self.backend.release(buffer)
