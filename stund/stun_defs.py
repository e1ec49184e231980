"""
Wire format for the small slice of STUN that's served here:
Binding Requests in and Binding Responses with a single
XOR-MAPPED-ADDRESS attribute out. All fields are big-endian.

    0-1   message type
    2-3   body length (excludes the 20 byte header)
    4-7   magic cookie 0x2112A442
    8-19  transaction ID

The XOR-MAPPED-ADDRESS transform differs from RFC 5389. After
the address is XORed with the magic cookie it's XORed again with
the first four bytes of the transaction ID. Deployed clients
undo exactly that so it has to stay bit-for-bit the same.
"""

from struct import pack, unpack
import socket
from .utils import *
from .net import *

STUN_MAGIC_COOKIE = 0x2112A442
STUN_MAGIC_COOKIE_BUF = pack("!I", STUN_MAGIC_COOKIE)
STUN_HDR_LEN = 20
STUN_TXID_LEN = 12
STUN_FAMILY_IP4 = 0x01

# Type (2) + len (2) + reserved (1) + family (1) + port (2) + IP (4).
STUN_XOR_ADDR_LEN = 12
STUN_XOR_ADDR_VAL_LEN = 8

def _get_const_name(cls, val, type_: type) -> str:
    for attr_name in dir(cls):
        attr = getattr(cls, attr_name)
        if isinstance(attr, type_) and attr == val:
            return attr_name
    return ''

class STUNMsgTypes:
    BindingRequest      = 0x0001
    BindingResponse     = 0x0101

    get = classmethod(lambda cls, val, type_=int: _get_const_name(cls, val, type_))

class STUNAttrs:
    XorMappedAddress    = 0x0020 # RFC5389

class STUNRequest:
    def __init__(self, msg_type, msg_len, magic_cookie, txn_id, attrs=b""):
        self.msg_type = msg_type # type: int
        self.msg_len = msg_len # type: int
        self.magic_cookie = magic_cookie # type: int
        self.txn_id = txn_id # type: bytes
        self.attrs = attrs # type: bytes

    def is_binding_request(self) -> bool:
        return self.msg_type == STUNMsgTypes.BindingRequest

    @staticmethod
    def unpack(buf):
        return stun_decode(buf)

    def __repr__(self):
        return "STUNRequest(type={:#06x}, len={}, txn_id={})".format(
            self.msg_type,
            self.msg_len,
            to_hs(self.txn_id)
        )

"""
Checks are done in a fixed order and the first one that fails
decides the error. Attribute bytes are passed along as-is.
Garbage inside a well-formed header is not an error here.
"""
def stun_decode(buf) -> STUNRequest:
    buf = bytes(buf)
    if len(buf) < STUN_HDR_LEN:
        raise ErrorStunTooShort(f"STUN msg too short ({len(buf)} bytes.)")

    # Unpack header fields.
    msg_type, msg_len, magic_cookie = unpack("!HHI", buf[0:8])
    txn_id = buf[8:STUN_HDR_LEN]

    if magic_cookie != STUN_MAGIC_COOKIE:
        raise ErrorStunBadCookie(f"Bad STUN magic cookie {magic_cookie:#010x}.")

    # Make sure message len accurately reflects size.
    if len(buf) != STUN_HDR_LEN + msg_len:
        raise ErrorStunLengthMismatch(
            f"STUN msg len {msg_len} doesn't match datagram len {len(buf)}."
        )

    return STUNRequest(
        msg_type,
        msg_len,
        magic_cookie,
        txn_id,
        buf[STUN_HDR_LEN:]
    )

class STUNAddrTup:
    def __init__(self, ip=None, port=None, txid=b"", magic_cookie=STUN_MAGIC_COOKIE_BUF):
        self.ip = ip
        self.port = port
        self.txid = txid
        self.magic_cookie = magic_cookie

    def xor_port(self):
        return self.port ^ (b_to_i(self.magic_cookie) >> 16)

    def xor_ip(self):
        # Stage one: XOR against the cookie MSB first.
        ip_buf = xor_bufs(ip4_octets(self.ip), self.magic_cookie)

        # Stage two: XOR the leading bytes against the TXID.
        n = min(4, len(self.txid))
        return xor_bufs(ip_buf[:n], self.txid[:n]) + ip_buf[n:]

    def encode(self) -> bytes:
        if not (0 <= self.port <= MAX_PORT):
            raise ValueError(f"Invalid port {self.port}.")

        return bytes().join([
            pack("!HH", STUNAttrs.XorMappedAddress, STUN_XOR_ADDR_VAL_LEN),
            pack("!BB", 0, STUN_FAMILY_IP4),
            pack("!H", self.xor_port()),
            self.xor_ip()
        ])

    # XOR is its own inverse so decoding reruns the same steps.
    @staticmethod
    def decode(attr, txid, magic_cookie=STUN_MAGIC_COOKIE_BUF):
        attr = bytes(attr)
        if len(attr) != STUN_XOR_ADDR_LEN:
            raise ErrorStunDecode("XOR mapped address attr wrong size.")

        attr_type, attr_len, _, family = unpack("!HHBB", attr[0:6])
        if attr_type != STUNAttrs.XorMappedAddress:
            raise ErrorStunDecode(f"Unexpected attr type {attr_type:#06x}.")
        if attr_len != STUN_XOR_ADDR_VAL_LEN or family != STUN_FAMILY_IP4:
            raise ErrorStunDecode("Unsupported XOR mapped address.")

        inst = STUNAddrTup(
            ip=attr[8:12],
            port=b_to_i(attr[6:8]),
            txid=txid,
            magic_cookie=magic_cookie
        )

        return STUNAddrTup(
            ip=socket.inet_ntoa(inst.xor_ip()),
            port=inst.xor_port(),
            txid=txid,
            magic_cookie=magic_cookie
        )

    @property
    def tup(self):
        return (self.ip, self.port)

    def __str__(self):
        return '{}:{}'.format(self.ip, self.port)

def xor_mapped_addr_attr(port, ip, txn_id) -> bytes:
    return STUNAddrTup(ip=ip, port=port, txid=txn_id).encode()

def stun_unxor_addr(attr, txn_id):
    return STUNAddrTup.decode(attr, txn_id).tup

def stun_response(msg_type, txn_id, attrs) -> bytes:
    if len(txn_id) != STUN_TXID_LEN:
        raise ValueError("STUN txn id must be 12 bytes.")

    body = bytes().join([bytes(attr) for attr in attrs])
    return bytes().join([
        pack("!HH", msg_type, len(body)),
        STUN_MAGIC_COOKIE_BUF,
        bytes(txn_id),
        body
    ])
