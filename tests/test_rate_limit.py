from stund import *


class TestRateLimiter(unittest.IsolatedAsyncioTestCase):
    def limiter(self, *args, **kwargs):
        limiter = RateLimiter(*args, **kwargs)
        self.addCleanup(limiter.close)
        return limiter

    async def test_burst_trips_limit(self):
        n = 5
        limiter = self.limiter(n, 10, 3)
        for i in range(0, n):
            self.assertTrue(limiter.check(100.0 + i * 0.01))

        # The request that goes over is dropped.
        self.assertFalse(limiter.check(100.1))
        self.assertTrue(limiter.is_paused(100.1))

    async def test_paused_always_false(self):
        limiter = self.limiter(1, 10, 3)
        self.assertTrue(limiter.check(10.0))
        self.assertFalse(limiter.check(10.0))
        for now in [10.5, 11.0, 12.0, 12.999]:
            self.assertFalse(limiter.check(now))

        # Nothing is recorded while paused.
        self.assertEqual(len(limiter.timestamps), 2)

    async def test_resume_after_pause(self):
        limiter = self.limiter(1, 10, 3)
        limiter.check(10.0)
        limiter.check(10.0)

        # Zero checks during the cooldown.
        self.assertFalse(limiter.is_paused(13.0))
        self.assertEqual(limiter.count(13.0), 0)

        # Fresh window after resume.
        self.assertTrue(limiter.check(13.0))
        self.assertFalse(limiter.check(13.1))

    async def test_resume_on_check(self):
        limiter = self.limiter(2, 10, 3)
        for now in [0.0, 0.5, 1.0]:
            limiter.check(now)

        self.assertTrue(limiter.paused)
        self.assertFalse(limiter.check(3.5))
        self.assertTrue(limiter.check(4.0))
        self.assertEqual(limiter.count(4.0), 1)

    async def test_window_prunes(self):
        limiter = self.limiter(2, 10, 3)
        self.assertTrue(limiter.check(0.0))
        self.assertTrue(limiter.check(1.0))

        # 0.0 is a full window old and drops out.
        self.assertTrue(limiter.check(10.0))
        self.assertEqual(limiter.count(10.0), 2)

        self.assertFalse(limiter.check(10.5))
        self.assertTrue(limiter.is_paused(10.5))

    async def test_timer_resumes_without_traffic(self):
        limiter = self.limiter(1, 10, 0.05)
        self.assertTrue(limiter.check())
        self.assertFalse(limiter.check())
        self.assertTrue(limiter.paused)
        self.assertIsNotNone(limiter.resume_handle)

        # No check() calls. The scheduled resume does the work.
        await asyncio.sleep(0.2)
        self.assertFalse(limiter.paused)
        self.assertEqual(len(limiter.timestamps), 0)
        self.assertIsNone(limiter.pause_expiry)
        self.assertTrue(limiter.check())

    async def test_uses_clock(self):
        now = [50.0]
        limiter = self.limiter(1, 10, 3, clock=lambda: now[0])
        self.assertTrue(limiter.check())
        self.assertFalse(limiter.check())
        self.assertEqual(limiter.pause_expiry, 53.0)
        now[0] = 53.0
        self.assertTrue(limiter.check())

    async def test_invalid_limits(self):
        for args in [(0, 10, 3), (1, 0, 3), (1, 10, 0), (-1, 10, 3)]:
            with self.assertRaises(ErrorInvalidConf):
                RateLimiter(*args)

class TestRateLimiterNoLoop(unittest.TestCase):
    def test_no_loop_lazy_resume(self):
        limiter = RateLimiter(1, 10, 3)
        limiter.check(0.0)
        self.assertFalse(limiter.check(0.0))
        self.assertIsNone(limiter.resume_handle)
        self.assertTrue(limiter.is_paused(2.9))
        self.assertTrue(limiter.check(3.0))

if __name__ == '__main__':
    main()
