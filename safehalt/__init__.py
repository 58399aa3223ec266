"""
safehalt: safe unattended power-off for a Proxmox node.

Waits for backups, replication and pool scrubs to finish, shuts guests
down, exports ZFS pools and only then powers the host off.
"""

__version__ = "0.1.0"
