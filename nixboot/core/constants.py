"""
Project constants definitions
"""

TOOL_NAME = "nixos-bootstrap"

# ============================================================
# Host
# ============================================================

NIXOS_MARKER_PATH = "/etc/NIXOS"
ROOT_UID = 0

# ============================================================
# Configuration Document
# ============================================================

CONFIGURATION_PATH = "/etc/nixos/configuration.nix"
FRAGMENT_NAME = "bootstrap-module.nix"
FRAGMENT_PATH = f"/etc/nixos/{FRAGMENT_NAME}"
FRAGMENT_REFERENCE = f"./{FRAGMENT_NAME}"
FRAGMENT_MODE = 0o644

# ============================================================
# Backup
# ============================================================

BACKUP_PREFIX = f"{TOOL_NAME}-backup"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"

# ============================================================
# External Commands
# ============================================================

DEFAULT_SUDO_COMMAND = ["sudo"]
DEFAULT_REBUILD_ACTION = "switch"
REBUILD_COMMAND = "nixos-rebuild"
SYSTEMCTL_COMMAND = "systemctl"
TAILSCALE_COMMAND = "tailscale"

# ============================================================
# Network Bring-up
# ============================================================

DEFAULT_VPN_SERVICE = "tailscaled"
DEFAULT_SETTLE_SECONDS = 3.0
AUTH_URL_PATTERN = r"https://login\.tailscale\.com/\S*"
IP_PLACEHOLDER = "Not available yet"
