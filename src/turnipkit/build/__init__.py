"""
Build system components for turnipkit.

This module provides:
- Meson machine file generation (cross + native)
- Compiler shims and the external tool environment
- Configure/compile orchestration with artifact validation
- Post-build cleanup
"""

from .cleanup import Cleanup
from .descriptor_generator import (
    DescriptorError,
    DescriptorSet,
    NativeDescriptor,
    ToolchainDescriptor,
    ToolchainDescriptorGenerator,
)
from .orchestrator import (
    BuildOrchestrator,
    BuildOrchestratorError,
    BuildResult,
    CompileError,
    ConfigureError,
    MissingArtifactError,
)
from .shims import CompilerShims, ShimError, build_environment

__all__ = [
    "Cleanup",
    "DescriptorError",
    "DescriptorSet",
    "NativeDescriptor",
    "ToolchainDescriptor",
    "ToolchainDescriptorGenerator",
    "BuildOrchestrator",
    "BuildOrchestratorError",
    "BuildResult",
    "CompileError",
    "ConfigureError",
    "MissingArtifactError",
    "CompilerShims",
    "ShimError",
    "build_environment",
]
