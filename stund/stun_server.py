"""
Answers STUN Binding Requests over UDP.

Every datagram goes through the same steps and is finished
before the next one is looked at:

    rate limiter -> decode -> binding check -> XOR addr -> send

A failure at any step drops the datagram. Nothing is ever
sent back for bad input or while the limiter is paused.
"""

import time
from .utils import *
from .errors import *
from .settings import *
from .stun_defs import *
from .rate_limit import RateLimiter
from .daemon import *

class STUNServer(Daemon):
    def __init__(self, conf=STUN_SERV_CONF, clock=time.monotonic):
        self.__name__ = "STUNServer"
        self.stun_conf = conf
        self.clock = clock
        self.limiter = RateLimiter(
            conf["max_requests"],
            conf["time_window_ms"] / 1000,
            conf["pause_duration_ms"] / 1000,
            clock=clock
        )

        # Client IP -> last time a send was logged.
        self.log_debounce = conf["log_debounce_ms"] / 1000
        self.last_log_time = {}
        self.last_prune = None
        super().__init__()

    """
    Pure part of the pipeline. Returns the response buf or
    raises the reason the datagram should be dropped.
    """
    def proc_msg(self, msg, client_tup, now=None):
        if not self.limiter.check(now):
            raise ErrorRateLimited(f"Dropping {client_tup[0]}")

        req = stun_decode(msg)
        if not req.is_binding_request():
            raise ErrorNotBindingRequest(
                f"Msg type {req.msg_type:#06x} is not a binding request."
            )

        ip, port = client_tup[:2]
        attr = xor_mapped_addr_attr(port, ip, req.txn_id)
        return stun_response(
            STUNMsgTypes.BindingResponse,
            req.txn_id,
            [attr]
        )

    def msg_cb(self, msg, client_tup, transport):
        try:
            resp = self.proc_msg(msg, client_tup)
        except ErrorRateLimited:
            log(f"Dropping {client_tup[0]}")
            return
        except (ErrorStunDecode, ErrorNotBindingRequest) as e:
            log(f"Invalid/Non-binding request from {client_tup[0]}:{client_tup[1]} = {e}")
            return

        try:
            self.send_resp(resp, client_tup, transport)
        except ErrorSendFailure:
            log_exception()

    def send_resp(self, resp, client_tup, transport):
        try:
            transport.sendto(resp, client_tup)
        except OSError as e:
            raise ErrorSendFailure(f"Error sending response to {client_tup}") from e

        self.log_sent(client_tup)

    # Avoid log spam from chatty clients.
    def log_sent(self, client_tup, now=None):
        now = self.clock() if now is None else now
        ip = client_tup[0]
        last_log = self.last_log_time.get(ip)
        if last_log is not None and (now - last_log) <= self.log_debounce:
            return False

        self.prune_log_times(now)
        log(f"Sent Binding Response to {ip}:{client_tup[1]}")
        self.last_log_time[ip] = now
        return True

    # Entries past the debounce no longer suppress anything.
    def prune_log_times(self, now):
        if self.last_prune is not None:
            if (now - self.last_prune) <= self.log_debounce:
                return

        self.last_prune = now
        self.last_log_time = {
            ip: last_log
            for ip, last_log in self.last_log_time.items()
            if (now - last_log) <= self.log_debounce
        }

    def err_cb(self, exc):
        log(f"Error sending response: {exc}")

    async def close(self):
        self.limiter.close()
        await super().close()

async def start_stun_server(conf=None):
    conf = validate_conf(conf or load_conf())
    serv = STUNServer(conf)
    print("Loaded config: {} requests per {}s, {}s pause".format(
        conf["max_requests"],
        conf["time_window_ms"] / 1000,
        conf["pause_duration_ms"] / 1000
    ))

    # A failed bind propagates to the caller.
    port, _ = await serv.add_listener(conf["bind_ip"], conf["bind_port"])
    print(f"STUN server running on {conf['bind_ip']}:{port}")
    return serv
