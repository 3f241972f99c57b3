import pytest

from reconnect_router.backoff import BACKOFF_CAP_S, BackoffPolicy, backoff_delay


# ==========================
# TEST GROUP: Backoff Delay
# ==========================
# Function: backoff_delay()
# -------------------------
@pytest.mark.parametrize(
    "failures, base, expected",
    [
        # ✅ Up to five failures: base delay
        (0, 15, 15),
        (1, 15, 15),
        (5, 15, 15),

        # ✅ Doubling past five
        (6, 15, 30),
        (7, 15, 60),
        (9, 15, 240),
        (10, 15, 480),

        # ⚠️ Capped at 10 minutes
        (10, 30, 600),

        # ⚠️ Inputs clamped to [0, 10]
        (-3, 15, 15),
        (25, 15, 480),
    ],
)

def test_backoff_delay(failures, base, expected):
    assert backoff_delay(failures, base) == expected

@pytest.mark.parametrize("base", [1, 15, 60, 600])
def test_backoff_is_monotonic_and_bounded(base):
    """Non-decreasing in failures, never below base, never above the cap"""
    delays = [backoff_delay(f, base) for f in range(0, 15)]

    assert delays == sorted(delays)
    assert all(d >= min(base, BACKOFF_CAP_S) for d in delays)
    assert all(d <= BACKOFF_CAP_S for d in delays)

def test_backoff_policy_logs_exponential(caplog):
    policy = BackoffPolicy(15)

    with caplog.at_level("INFO"):
        assert policy.delay(3) == 15
        assert not caplog.records
        assert policy.delay(6) == 30

    assert "exponential backoff" in caplog.text
