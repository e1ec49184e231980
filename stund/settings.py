import os
import json
from .utils import *
from .net import *

STUN_PORT = 3478
STUN_BIND_IP = "0.0.0.0"

"""
The limiter numbers that have been deployed range from 30 to
15000 requests per window. The higher value is kept as the
default so a busy public server isn't starved out of the box.
"""
RATE_LIMIT_MAX_REQUESTS = 15000
RATE_LIMIT_TIME_WINDOW_MS = 10000
RATE_LIMIT_PAUSE_DURATION_MS = 3000

# Only log a sent response once per client IP in this period.
LOG_DEBOUNCE_MS = 5000

STUN_SERV_CONF = {
    "bind_ip": STUN_BIND_IP,
    "bind_port": STUN_PORT,
    "max_requests": RATE_LIMIT_MAX_REQUESTS,
    "time_window_ms": RATE_LIMIT_TIME_WINDOW_MS,
    "pause_duration_ms": RATE_LIMIT_PAUSE_DURATION_MS,
    "log_debounce_ms": LOG_DEBOUNCE_MS,
}

# Config file layout -> flat conf keys.
CONF_FILE_KEYS = {
    "server": {
        "bindIp": "bind_ip",
        "bindPort": "bind_port",
    },
    "rateLimit": {
        "maxRequests": "max_requests",
        "timeWindowMs": "time_window_ms",
        "pauseDurationMs": "pause_duration_ms",
        "logDebounceMs": "log_debounce_ms",
    },
}

# Env vars applied last.
CONF_ENV_KEYS = {
    "STUND_BIND_IP": ("bind_ip", str),
    "STUND_BIND_PORT": ("bind_port", int),
    "STUND_MAX_REQUESTS": ("max_requests", int),
}

def get_default_conf_path():
    return os.path.realpath(
        os.path.join(
            os.getcwd(),
            "config.json"
        )
    )

def conf_from_file_dict(file_conf, conf=STUN_SERV_CONF):
    out = {}
    for section, keys in CONF_FILE_KEYS.items():
        values = file_conf.get(section) or {}
        if not isinstance(values, dict):
            raise ErrorInvalidConf(f"config section {section} must be an object")

        for file_key, conf_key in keys.items():
            if file_key in values:
                out[conf_key] = values[file_key]

    return dict_child(out, conf)

def conf_from_env(conf, env=None):
    env = os.environ if env is None else env
    out = {}
    for env_key, (conf_key, cast) in CONF_ENV_KEYS.items():
        if env_key in env:
            try:
                out[conf_key] = cast(env[env_key])
            except ValueError:
                raise ErrorInvalidConf(f"bad value for {env_key}")

    return dict_child(out, conf)

"""
A missing or broken config file isn't fatal. The server
falls back to the defaults and says so.
"""
def load_conf(path=None, env=None):
    path = path or get_default_conf_path()
    conf = STUN_SERV_CONF
    try:
        with open(path, "r", encoding="utf-8") as fp:
            file_conf = json.load(fp)

        if not isinstance(file_conf, dict):
            raise ErrorInvalidConf("config root must be an object")

        conf = conf_from_file_dict(file_conf)
    except (OSError, ValueError, ErrorInvalidConf):
        log(f"Failed to load config file {path}, using defaults.")
        log_exception()

    return validate_conf(conf_from_env(conf, env))

def validate_conf(conf):
    for key in ["max_requests", "time_window_ms", "pause_duration_ms"]:
        val = conf[key]
        if isinstance(val, bool) or not isinstance(val, (int, float)):
            raise ErrorInvalidConf(f"{key} must be a number")
        if val <= 0:
            raise ErrorInvalidConf(f"{key} must be greater than 0")

    debounce = conf["log_debounce_ms"]
    if isinstance(debounce, bool) or not isinstance(debounce, (int, float)) or debounce < 0:
        raise ErrorInvalidConf("log_debounce_ms must be a number >= 0")

    port = conf["bind_port"]
    if isinstance(port, bool) or not isinstance(port, int):
        raise ErrorInvalidConf("bind_port must be an int")

    # Port 0 lets the OS pick which is handy for tests.
    if not (port == 0 or valid_port(port)):
        raise ErrorInvalidConf(f"invalid bind_port {port}")

    conf = dict_child({"bind_ip": ip_norm(conf["bind_ip"])}, conf)
    return conf
