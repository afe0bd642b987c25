"""
Bootstrap fragment: the NixOS module imported by configuration.nix
"""
from pathlib import Path

from ...core.interfaces import DocumentStore
from ...core.logging import get_logger

logger = get_logger(__name__)

FRAGMENT_TEMPLATE = r"""{ config, pkgs, lib, ... }:

{
  # Tailscale configuration
  services.tailscale = {
    enable = true;
    useRoutingFeatures = "client";
  };

  # QEMU Guest Agent (for VMs) - enables better VM integration
  services.qemuGuest.enable = lib.mkDefault true;

  # SSH service configuration for remote access
  services.openssh = {
    enable = true;
    settings = {
      PasswordAuthentication = lib.mkDefault true;
      PermitRootLogin = lib.mkDefault "prohibit-password";
      X11Forwarding = false;
      PrintMotd = false;
    };
  };

  # Enable nix-ld for VS Code Remote SSH compatibility
  # This allows VS Code to run its Node.js server and extensions
  programs.nix-ld.enable = true;
  programs.nix-ld.libraries = with pkgs; [
    # Core libraries needed for VS Code Remote
    stdenv.cc.cc.lib
    zlib
    openssl
    curl
    expat
    fontconfig
    freetype
    glib
    icu
    libdrm
    libGL
    mesa
    nspr
    nss
    xorg.libX11
    xorg.libxcb
    # Additional libraries for common extensions
    python3
    nodejs_18
  ];

  # Firewall configuration
  networking.firewall = {
    enable = true;
    # Trust Tailscale interface
    trustedInterfaces = [ "tailscale0" ];
    # Allow SSH
    allowedTCPPorts = [ 22 ];
    # Allow Tailscale
    allowedUDPPorts = [ config.services.tailscale.port ];
  };

  # Network configuration
  networking.networkmanager.enable = lib.mkDefault true;

  # Essential system packages
  environment.systemPackages = with pkgs; [
    tailscale
    wget
    curl
    git
    vim
    htop
    tree
    tmux
    # Required for VS Code Remote
    nodejs_18
    python3
  ];

  # Enable flakes and new nix command
  nix.settings.experimental-features = [ "nix-command" "flakes" ];

  # Additional configuration to help VS Code Remote work
  environment.variables = {
    # Ensure VS Code can find Node.js
    NODE_PATH = "${pkgs.nodejs_18}/lib/node_modules";
  };

  # Create compatibility symlinks - NixOS 25.05 compatible
  # Using environment.extraInit instead of removed activation scripts
  environment.extraInit = ''
    # Create compatibility symlinks for VS Code Remote
    if [ ! -d /usr/bin ]; then
      mkdir -p /usr/bin
    fi
    if [ ! -e /usr/bin/node ]; then
      ln -sf ${pkgs.nodejs_18}/bin/node /usr/bin/node
    fi
    if [ ! -e /usr/bin/python3 ]; then
      ln -sf ${pkgs.python3}/bin/python3 /usr/bin/python3
    fi
  '';
}
"""


def write_fragment(store: DocumentStore, path: Path) -> None:
    """
    Write the fragment, replacing whatever is at path.

    The content is fixed, so re-running always leaves the latest template.
    """
    store.write(path, FRAGMENT_TEMPLATE)
    logger.info(f"Wrote bootstrap module to {path}")
