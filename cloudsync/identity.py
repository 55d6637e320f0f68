"""Per-machine client identity.

The client id tags every blob this machine writes so the reconciler can tell
its own uploads apart from edits made elsewhere. It is derived from a network
interface's hardware address, so it is stable across restarts and never needs
the network.
"""

import hashlib
import logging
import re

import psutil

from cloudsync.exceptions import ClientIdentityError

logger = logging.getLogger(__name__)

# Conventional names of the primary wireless interface, in order of preference
PREFERRED_INTERFACES = ("wlan0", "en0")
PREFERRED_PREFIXES = ("wlp", "wlo")

CLIENT_ID_LENGTH = 16

_ZERO_ADDRESS = re.compile(r"^[0:\-.]*$")


def _hardware_address(addresses) -> str | None:
    """Return the first usable link-layer address from a psutil address list."""
    for addr in addresses:
        if addr.family != psutil.AF_LINK:
            continue
        value = (addr.address or "").strip().lower()
        if value and not _ZERO_ADDRESS.match(value):
            return value
    return None


def select_hardware_address(interfaces: dict) -> tuple[str, str]:
    """Pick the interface whose hardware address identifies this machine.

    Args:
        interfaces: Mapping of interface name to psutil address list, as
            returned by ``psutil.net_if_addrs()``

    Returns:
        Tuple of (interface_name, hardware_address)

    Raises:
        ClientIdentityError: If no interface exposes a usable address
    """
    usable = {}
    for name in sorted(interfaces):
        address = _hardware_address(interfaces[name])
        if address:
            usable[name] = address

    if not usable:
        raise ClientIdentityError(
            "No network interface exposes a hardware address; cannot derive client id"
        )

    for name in PREFERRED_INTERFACES:
        if name in usable:
            return name, usable[name]
    for name in usable:
        if name.startswith(PREFERRED_PREFIXES):
            return name, usable[name]

    name = next(iter(usable))
    return name, usable[name]


def get_client_id(interfaces: dict | None = None) -> str:
    """Derive this machine's client id.

    Args:
        interfaces: Optional interface mapping; defaults to psutil's view of
            the local interfaces

    Returns:
        Short hex string, stable for a given hardware address
    """
    if interfaces is None:
        interfaces = psutil.net_if_addrs()

    name, address = select_hardware_address(interfaces)
    client_id = hashlib.md5(address.encode("utf-8")).hexdigest()[:CLIENT_ID_LENGTH]
    logger.debug(f"Client id {client_id} derived from interface {name}")
    return client_id
