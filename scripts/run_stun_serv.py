from stund import *

async def run_stun_server():
    serv = await start_stun_server(load_conf())

    # Sleep forever.
    try:
        while 1:
            await asyncio.sleep(1)
    finally:
        await serv.close()

try:
    async_test(run_stun_server)
except KeyboardInterrupt:
    pass
