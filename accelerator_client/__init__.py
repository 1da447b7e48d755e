from .accelerator_client import (
    DEFAULT_KERNEL_FILE,
    ORDER_STATISTICS_KERNEL,
    REDUCE_KERNEL,
    AcceleratorBackend,
    AcceleratorError,
    BatchDispatcher,
    CPUBackend,
    DispatchError,
    KernelBuildError,
    OpenCLBackend,
    StationStatsConfig,
    create_backend,
    pad_batch,
    padded_length,
)

__all__ = [
    "DEFAULT_KERNEL_FILE",
    "ORDER_STATISTICS_KERNEL",
    "REDUCE_KERNEL",
    "AcceleratorBackend",
    "AcceleratorError",
    "BatchDispatcher",
    "CPUBackend",
    "DispatchError",
    "KernelBuildError",
    "OpenCLBackend",
    "StationStatsConfig",
    "create_backend",
    "pad_batch",
    "padded_length",
]
