import asyncio
import unittest
import socket
from struct import pack
from unittest import main

from .errors import *
from .settings import *
from .utils import *
from .net import *
from .stun_defs import *

TEST_TXN_ID = h_to_b("00112233445566778899AABB")
TEST_CLIENT_TUP = ("203.0.113.7", 54321)

# Build a raw STUN datagram with any header values.
def stun_test_buf(msg_type=STUNMsgTypes.BindingRequest, txn_id=TEST_TXN_ID, attrs=b"", msg_len=None, cookie=STUN_MAGIC_COOKIE):
    msg_len = len(attrs) if msg_len is None else msg_len
    return bytes().join([
        pack("!HHI", msg_type, msg_len, cookie),
        txn_id,
        attrs
    ])

# Conf for servers started in tests.
def stun_test_conf(**kwargs):
    conf = dict_child({
        "bind_ip": "127.0.0.1",
        "bind_port": 0,
    }, STUN_SERV_CONF)

    return dict_child(kwargs, conf)
