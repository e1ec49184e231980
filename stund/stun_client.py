"""
Tiny client for checking a server from the command line and
in tests. It sends one Binding Request and undoes the XOR on
the address in the reply, using the same two-stage transform
as the server.
"""

import asyncio
import os
from struct import pack
from .errors import *
from .utils import *
from .net import *
from .stun_defs import *

def stun_binding_req(txn_id=None, attrs=b""):
    txn_id = txn_id or os.urandom(STUN_TXID_LEN)
    return bytes().join([
        pack("!HH", STUNMsgTypes.BindingRequest, len(attrs)),
        STUN_MAGIC_COOKIE_BUF,
        txn_id,
        attrs
    ]), txn_id

class STUNClientProto(asyncio.DatagramProtocol):
    def __init__(self, txn_id):
        self.txn_id = txn_id
        self.reply = asyncio.get_running_loop().create_future()

    def datagram_received(self, data, client_tup):
        # Ignore anything that isn't our reply.
        if self.reply.done() or data[8:20] != self.txn_id:
            return

        self.reply.set_result(data)

    def error_received(self, exc):
        if not self.reply.done():
            self.reply.set_exception(exc)

class STUNClient():
    def __init__(self, dest, timeout=2):
        self.dest = dest
        self.timeout = timeout

    async def get_stun_reply(self, txn_id=None):
        buf, txn_id = stun_binding_req(txn_id)
        loop = asyncio.get_running_loop()
        transport, proto = await loop.create_datagram_endpoint(
            lambda: STUNClientProto(txn_id),
            family=IP4,
            remote_addr=self.dest
        )

        try:
            transport.sendto(buf)
            reply = await asyncio.wait_for(proto.reply, self.timeout)
        except asyncio.TimeoutError:
            raise ErrorNoReply("STUN recv loop got no reply.")
        finally:
            transport.close()

        return reply, txn_id

    # Returns our (ip, port) as the server sees it.
    async def get_mapping(self, txn_id=None):
        reply, txn_id = await self.get_stun_reply(txn_id)
        if len(reply) != STUN_HDR_LEN + STUN_XOR_ADDR_LEN:
            raise ErrorStunLengthMismatch("Unexpected STUN reply size.")

        return stun_unxor_addr(reply[STUN_HDR_LEN:], txn_id)

async def get_mapping(dest, txn_id=None, timeout=2):
    return await STUNClient(dest, timeout).get_mapping(txn_id)
