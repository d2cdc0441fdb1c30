"""Unit tests for the fixed-window rate limiter."""

from recipe_server.lib.rate_limit import FixedWindowRateLimiter


def test_disabled_limiter_allows_everything(clock):
  limiter = FixedWindowRateLimiter(max_requests=0, clock=clock)

  assert limiter.enabled is False
  assert all(limiter.hit('10.0.0.1') for _ in range(1000))


def test_limit_applies_per_client(clock):
  limiter = FixedWindowRateLimiter(max_requests=2, window_ms=1000, clock=clock)

  assert limiter.hit('a') is True
  assert limiter.hit('a') is True
  assert limiter.hit('a') is False
  assert limiter.hit('b') is True


def test_window_resets_after_expiry(clock):
  limiter = FixedWindowRateLimiter(max_requests=1, window_ms=1000, clock=clock)

  assert limiter.hit('a') is True
  assert limiter.hit('a') is False
  clock.advance_ms(1000)
  assert limiter.hit('a') is True


def test_reset_clears_counters(clock):
  limiter = FixedWindowRateLimiter(max_requests=1, clock=clock)
  limiter.hit('a')

  limiter.reset()

  assert limiter.hit('a') is True
