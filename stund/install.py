import os
import pathlib

# Home dir / stund.
def get_stund_install_root():
    return os.path.realpath(
        os.path.join(
            os.path.expanduser("~"),
            "stund"
        )
    )

# Lock files live here so only one server binds a port.
def get_serv_lock_path(serv_port, serv_ip):
    serv_ip = serv_ip.replace(".", "_")
    return os.path.realpath(
        os.path.join(
            get_stund_install_root(),
            f"v4_udp_{serv_port}_{serv_ip}_pid.txt"
        )
    )

def make_install_root():
    install_root = get_stund_install_root()
    pathlib.Path(install_root).mkdir(parents=True, exist_ok=True)
    return install_root
