import argparse
import asyncio
import sys
from stund.utils import async_test, dict_child
from stund.errors import ErrorInvalidConf, ErrorServZombie, ErrorListenConflict
from stund.settings import load_conf, validate_conf
from stund.stun_server import start_stun_server

def get_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="stund",
        description="STUN binding server with a global rate limit."
    )
    parser.add_argument("--config", default=None, help="path to config.json")
    parser.add_argument("--bind-ip", default=None, help="IPv4 address to listen on")
    parser.add_argument("--port", type=int, default=None, help="UDP port to listen on")
    return parser.parse_args(argv)

def conf_from_args(args):
    conf = load_conf(args.config)
    out = {}
    if args.bind_ip is not None:
        out["bind_ip"] = args.bind_ip
    if args.port is not None:
        out["bind_port"] = args.port

    return validate_conf(dict_child(out, conf))

async def run_stun_server(conf):
    serv = await start_stun_server(conf)

    # Sleep forever.
    try:
        while 1:
            await asyncio.sleep(1)
    finally:
        await serv.close()

def main(argv=None):
    try:
        conf = conf_from_args(get_args(argv))
    except ErrorInvalidConf as e:
        print(f"Invalid config: {e}", file=sys.stderr)
        return 2

    try:
        async_test(run_stun_server, [conf])
    except KeyboardInterrupt:
        pass
    except (OSError, ErrorServZombie, ErrorListenConflict) as e:
        print(f"Server fatal error: {e}", file=sys.stderr)
        return 1

    return 0

if __name__ == "__main__":
    sys.exit(main())
