"""
nixboot - NixOS bootstrap for Tailscale SSH + VS Code Remote editing

Prepares a fresh NixOS machine in one run:
- Writes a bootstrap module (Tailscale, OpenSSH, nix-ld, firewall)
- Adds the module to the imports of configuration.nix, idempotently
- Rebuilds the system
- Brings up Tailscale with SSH and prints connection details
"""

__version__ = "0.1.0"

# Export domain components
from .domain.patcher import (
    PatchOutcome,
    PatchResult,
    ensure_import,
    apply_import,
    is_balanced,
)

from .domain.bootstrap import (
    BootstrapService,
    BootstrapSettings,
    BootstrapReport,
    HostFacts,
    FRAGMENT_TEMPLATE,
)

__all__ = [
    # Version
    "__version__",
    # Patcher
    "PatchOutcome",
    "PatchResult",
    "ensure_import",
    "apply_import",
    "is_balanced",
    # Bootstrap
    "BootstrapService",
    "BootstrapSettings",
    "BootstrapReport",
    "HostFacts",
    "FRAGMENT_TEMPLATE",
]
