import asyncio
import binascii
import copy
import sys, os
import platform
import logging
import traceback

vmaj, vmin, _ = platform.python_version_tuple()
vmaj = int(vmaj); vmin = int(vmin)
if vmaj < 3:
    raise Exception("Python 2 not supported.")

if "STUND_DEBUG" in os.environ:
    IS_DEBUG = 1
    logging.basicConfig(
        filename='program.log',
        level=logging.DEBUG,
        format='[%(asctime)s.%(msecs)03d] @ [%(filename)s:%(lineno)d] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    def log(m):
        if "STUND_DEBUG" not in os.environ:
            return

        logging.info(m)
else:
    IS_DEBUG = 0
    log = lambda m: 1

MAX_PORT = 65535
to_b = lambda x: x if type(x) == bytes else x.encode("ascii")
to_s = lambda x: x if type(x) == str else x.decode("ascii")
to_hs = lambda x: to_s(binascii.hexlify(to_b(x)))
h_to_b = lambda x: binascii.unhexlify(to_b(x))
b_to_i = lambda x, o='big': int.from_bytes(x, o)
valid_port = lambda p: p >= 1 and p <= MAX_PORT
xor_bufs = lambda a, b: bytes(map(lambda x, y: x ^ y, a, b))

# Take a dict template called Y and a child dict called X.
# Yield a new dict with Y's vals overwritten by X's.
def dict_child(x, y):
    out = copy.deepcopy(y)
    for key in x:
        out[key] = x[key]

    return out

def log_exception():
    exc_type, exc_obj, exc_tb = sys.exc_info()
    fname = os.path.split(exc_tb.tb_frame.f_code.co_filename)[1]
    exc_out = traceback.format_exc()
    log("> {}, line {} = {}".format(
        fname,
        exc_tb.tb_lineno,
        exc_out
    ))

async def async_wrap_errors(coro, timeout=None):
    try:
        # Don't bound wait time.
        if timeout is None:
            return (await coro)

        # Bound wait time.
        return (await asyncio.wait_for(coro, timeout))
    except Exception:
        # Log all errors.
        log_exception()

def sync_wrap_errors(f, args=[]):
    try:
        if len(args):
            return f(*args)
        else:
            return f()
    except Exception:
        # Log all errors.
        log_exception()

def get_running_loop():
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None

# Will be used in launchers to avoid boilerplate.
def async_test(f, args=[]):
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    loop.set_debug(False)
    try:
        if len(args):
            loop.run_until_complete(f(*args))
        else:
            loop.run_until_complete(f())
    except KeyboardInterrupt:
        # Give pending tasks a chance to run their cleanup.
        tasks = asyncio.all_tasks(loop)
        for task in tasks:
            task.cancel()

        loop.run_until_complete(
            asyncio.gather(*tasks, return_exceptions=True)
        )
        raise
    finally:
        loop.close()
