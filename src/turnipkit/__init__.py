"""turnipkit - build and package the Mesa Turnip Vulkan driver for Android."""

__version__ = "0.1.0"
