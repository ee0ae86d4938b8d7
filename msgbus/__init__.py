"""Message bus building blocks: labels and routing expressions, typed payloads, a wire codec, memory regions and an in-process bus controller."""

__version__ = "0.8.1"

__all__ = [
    "bus_controller",
    "codec",
    "errors",
    "label",
    "memory_registry",
    "message",
    "options",
    "version",
]