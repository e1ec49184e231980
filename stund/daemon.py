import asyncio
import inspect
import socket
import fasteners
from .utils import *
from .net import *
from .install import *

DAEMON_CONF = dict_child({
    "reuse_addr": False
}, NET_CONF)

def get_serv_lock(serv_port, serv_ip):
    # Make install dir if needed.
    try:
        make_install_root()
    except OSError:
        log_exception()
        return None

    return fasteners.InterProcessLock(
        get_serv_lock_path(serv_port, serv_ip)
    )

def udp_sock_factory(bind_ip, bind_port, conf=NET_CONF):
    sock = socket.socket(IP4, UDP)
    try:
        if conf["reuse_addr"]:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if conf["broadcast"]:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)

        sock.setblocking(False)
        sock.bind((bind_ip, bind_port))
        return sock
    except Exception:
        if conf["do_close"]:
            sock.close()

        raise

"""
asyncio calls the protocol for every datagram. Sync message
handlers are run right there so one datagram is fully
handled before the next. Coroutine handlers are wrapped in
tasks and the references are kept so they aren't collected.
"""
class DaemonProto(asyncio.DatagramProtocol):
    def __init__(self, daemon):
        self.daemon = daemon
        self.transport = None
        self.tasks = []

    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data, client_tup):
        if self.transport is None:
            log("Skipping datagram cause transport none.")
            return

        handler = self.daemon.msg_cb
        if inspect.iscoroutinefunction(handler):
            self.tasks = [t for t in self.tasks if not t.done()]
            task = asyncio.create_task(
                async_wrap_errors(
                    handler(data, client_tup, self.transport)
                )
            )
            self.tasks.append(task)
        else:
            sync_wrap_errors(handler, [data, client_tup, self.transport])

    # ICMP errors from earlier sends end up here.
    def error_received(self, exc):
        log(f"Daemon transport error = {exc}")
        sync_wrap_errors(self.daemon.err_cb, [exc])

    def connection_lost(self, exc):
        self.transport = None

class Daemon():
    def __init__(self, conf=DAEMON_CONF):
        # Special net conf for daemon servers.
        self.conf = conf

        # port: ip: [transport, proto].
        self.servers = {}

        # Held for as long as the server listens.
        self.locks = []

    async def add_listener(self, bind_ip, bind_port):
        bind_ip = ip_norm(bind_ip)

        # Already listening here.
        if bind_ip in self.servers.get(bind_port, {}):
            raise ErrorListenConflict(f"udp:{bind_ip}:{bind_port} listen conflict.")

        # Detect zombie servers.
        lock = None
        if bind_port:
            lock = get_serv_lock(bind_port, bind_ip)
            if lock is not None:
                if not lock.acquire(blocking=False):
                    error = f"udp:{bind_ip}:{bind_port} zombie pid"
                    raise ErrorServZombie(error)

        # Start a new server listening.
        try:
            sock = udp_sock_factory(bind_ip, bind_port, self.conf)
            loop = asyncio.get_running_loop()
            transport, proto = await loop.create_datagram_endpoint(
                lambda: DaemonProto(self),
                sock=sock
            )
        except Exception:
            if lock is not None:
                lock.release()

            raise

        # Record assigned port.
        port = transport.get_extra_info("sockname")[1]
        if lock is not None:
            self.locks.append(lock)

        # Store the server.
        if port not in self.servers:
            self.servers[port] = {}
        self.servers[port][bind_ip] = [transport, proto]

        return (port, transport)

    # On message received (placeholder.)
    def msg_cb(self, msg, client_tup, transport):
        log(f"Specify your own msg_cb in a child class. {msg} {client_tup}")

    # On transport error (placeholder.)
    def err_cb(self, exc):
        pass

    async def close(self):
        for port in self.servers:
            for ip in self.servers[port]:
                transport, proto = self.servers[port][ip]
                transport.close()

                # Wait for any handler tasks.
                if len(proto.tasks):
                    await asyncio.gather(*proto.tasks, return_exceptions=True)

        self.servers = {}
        for lock in self.locks:
            sync_wrap_errors(lock.release)
        self.locks = []

        # Let the transports finish closing.
        await asyncio.sleep(0)
