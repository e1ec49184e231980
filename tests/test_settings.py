import json
import os
import tempfile
from stund import *


class TestSettings(unittest.IsolatedAsyncioTestCase):
    def write_conf(self, data):
        fd, path = tempfile.mkstemp(suffix=".json")
        with os.fdopen(fd, "w") as fp:
            if isinstance(data, str):
                fp.write(data)
            else:
                json.dump(data, fp)

        self.addCleanup(os.remove, path)
        return path

    async def test_load_file_layout(self):
        path = self.write_conf({
            "rateLimit": {
                "maxRequests": 30,
                "timeWindowMs": 5000,
                "pauseDurationMs": 1000
            },
            "server": {
                "bindIp": "127.0.0.1",
                "bindPort": 3479
            }
        })

        conf = load_conf(path, env={})
        self.assertEqual(conf["max_requests"], 30)
        self.assertEqual(conf["time_window_ms"], 5000)
        self.assertEqual(conf["pause_duration_ms"], 1000)
        self.assertEqual(conf["bind_ip"], "127.0.0.1")
        self.assertEqual(conf["bind_port"], 3479)
        self.assertEqual(conf["log_debounce_ms"], LOG_DEBOUNCE_MS)

    async def test_partial_file(self):
        path = self.write_conf({"rateLimit": {"maxRequests": 300}})
        conf = load_conf(path, env={})
        self.assertEqual(conf["max_requests"], 300)
        self.assertEqual(conf["time_window_ms"], RATE_LIMIT_TIME_WINDOW_MS)
        self.assertEqual(conf["bind_port"], STUN_PORT)

    async def test_missing_file_defaults(self):
        conf = load_conf("/nonexistent/stund/config.json", env={})
        self.assertEqual(conf, STUN_SERV_CONF)

    async def test_bad_json_defaults(self):
        path = self.write_conf("{not json")
        conf = load_conf(path, env={})
        self.assertEqual(conf["max_requests"], RATE_LIMIT_MAX_REQUESTS)

    async def test_bad_section_defaults(self):
        path = self.write_conf({"rateLimit": 5})
        conf = load_conf(path, env={})
        self.assertEqual(conf, STUN_SERV_CONF)

    async def test_env_overrides(self):
        path = self.write_conf({"server": {"bindPort": 4000}})
        env = {"STUND_BIND_PORT": "5000", "STUND_MAX_REQUESTS": "15"}
        conf = load_conf(path, env=env)
        self.assertEqual(conf["bind_port"], 5000)
        self.assertEqual(conf["max_requests"], 15)

    async def test_bad_env(self):
        with self.assertRaises(ErrorInvalidConf):
            load_conf("/nonexistent", env={"STUND_BIND_PORT": "abc"})

    async def test_defaults_untouched(self):
        path = self.write_conf({"rateLimit": {"maxRequests": 1}})
        load_conf(path, env={})
        self.assertEqual(STUN_SERV_CONF["max_requests"], RATE_LIMIT_MAX_REQUESTS)

    async def test_validate(self):
        bad = [
            {"max_requests": 0},
            {"time_window_ms": -1},
            {"pause_duration_ms": "3000"},
            {"bind_port": 70000},
            {"bind_port": "3478"},
            {"bind_ip": "::1"},
            {"bind_ip": "not an ip"},
            {"bind_ip": 5},
            {"log_debounce_ms": -1},
            {"log_debounce_ms": None},
        ]
        for change in bad:
            with self.assertRaises(ErrorInvalidConf):
                validate_conf(dict_child(change, STUN_SERV_CONF))

    async def test_validate_norms_any(self):
        conf = validate_conf(dict_child({"bind_ip": "*"}, STUN_SERV_CONF))
        self.assertEqual(conf["bind_ip"], "0.0.0.0")

if __name__ == '__main__':
    main()
