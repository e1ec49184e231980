import socket
import ipaddress
from .errors import *

# Avoid annoying socket... to access vars.
AF_INET = socket.AF_INET
UDP = DGRAM = SOCK_DGRAM = socket.SOCK_DGRAM

# Only IPv4 is served.
IP4 = V4 = AF_INET

V4_VALID_ANY = ["*", "0.0.0.0", ""]

# Fine tune various network settings.
NET_CONF = {
    # Reuse address tuple for bind() socket call.
    "reuse_addr": False,

    # Setup socket as a broadcast socket.
    "broadcast": False,

    # Enable closing sock on error.
    "do_close": True,
}

"""
Bind IPs come from config files and the command line so
they're normalised here. '*' and '' mean all addresses.
Anything that isn't a plain IPv4 address is an error as
there is no v6 support.
"""
def ip_norm(ip):
    if not isinstance(ip, str):
        raise ErrorInvalidConf(f"bind ip must be a string: {ip!r}")

    if ip in V4_VALID_ANY:
        return "0.0.0.0"

    if ip == "localhost":
        return "127.0.0.1"

    try:
        ipa = ipaddress.ip_address(ip)
    except ValueError:
        raise ErrorInvalidConf(f"invalid bind ip {ip}")

    if ipa.version != 4:
        raise ErrorInvalidConf(f"only IPv4 is supported: {ip}")

    return str(ipa)

def ip4_octets(ip):
    if isinstance(ip, (bytes, bytearray)):
        if len(ip) != 4:
            raise ValueError("IPv4 address must be 4 bytes.")

        return bytes(ip)

    return ipaddress.IPv4Address(ip).packed
