import pytest

from reconnect_router.link_fsm import LinkFSM, LinkVerdict


@pytest.mark.parametrize(
    "observations, verdict",
    [
        ([], LinkVerdict.UP),
        ([False], LinkVerdict.SUSPECT),
        ([False, False], LinkVerdict.DOWN),
        ([False, False, False], LinkVerdict.DOWN),
        ([False, True], LinkVerdict.UP),
        ([False, False, True], LinkVerdict.UP),
        ([False, True, False], LinkVerdict.SUSPECT),
    ],
)

def test_verdicts(observations, verdict):
    fsm = LinkFSM(threshold=2)
    for reachable in observations:
        fsm.observe(reachable)

    assert fsm.verdict is verdict

def test_observe_signals_crossing_once():
    """Only the probe that reaches the threshold reports a transition"""
    fsm = LinkFSM(threshold=2)

    assert [fsm.observe(False) for _ in range(4)] == [False, True, False, False]

def test_success_resets_counter():
    fsm = LinkFSM()
    fsm.observe(False)
    fsm.observe(False)
    fsm.observe(True)

    assert fsm.consec_fails == 0
    assert fsm.observe(False) is False
