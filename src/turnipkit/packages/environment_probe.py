"""
Host tool presence checks.

The probe only reports; it never installs anything. Its ProbeResult is the
precondition gate consumed by the pipeline before any work starts.
"""

import shutil
from dataclasses import dataclass, field
from typing import Dict, List, Optional

REQUIRED_TOOLS = ["meson", "ninja", "pkg-config", "flex", "bison", "glslangValidator"]
OPTIONAL_TOOLS = ["ccache"]


@dataclass
class ProbeResult:
    """Outcome of an environment probe.

    Attributes:
        found: Tool name -> resolved executable path
        missing: Required tools that were not found
        optional_missing: Optional tools that were not found
    """

    found: Dict[str, str] = field(default_factory=dict)
    missing: List[str] = field(default_factory=list)
    optional_missing: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing

    def has(self, tool: str) -> bool:
        return tool in self.found

    def path_of(self, tool: str) -> Optional[str]:
        return self.found.get(tool)


class EnvironmentProbe:
    """Checks PATH for the external tools a build needs."""

    def __init__(
        self,
        required: Optional[List[str]] = None,
        optional: Optional[List[str]] = None,
    ):
        self.required = list(REQUIRED_TOOLS if required is None else required)
        self.optional = list(OPTIONAL_TOOLS if optional is None else optional)

    def probe(self) -> ProbeResult:
        """Look up every tool on PATH.

        Returns:
            ProbeResult listing found and missing tools
        """
        result = ProbeResult()

        for tool in self.required:
            path = shutil.which(tool)
            if path:
                result.found[tool] = path
            else:
                result.missing.append(tool)

        for tool in self.optional:
            path = shutil.which(tool)
            if path:
                result.found[tool] = path
            else:
                result.optional_missing.append(tool)

        return result
