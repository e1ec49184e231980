import os

if __name__ != '__main__':
    os.environ["PYTHONIOENCODING"] = "utf-8"

    from .errors import *
    from .utils import log, log_exception, async_test
    from .net import *
    from .settings import *
    from .stun_defs import *
    from .rate_limit import RateLimiter
    from .daemon import Daemon
    from .stun_server import STUNServer, start_stun_server
    from .stun_client import STUNClient, get_mapping, stun_binding_req
    from .install import *
    from .test_init import *
