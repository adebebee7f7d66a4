from .device import Device, cpu_numpy, default_device
from .ndarray import NDArray

__all__ = ["Device", "NDArray", "cpu_numpy", "default_device"]
