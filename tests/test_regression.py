import pytest

from regression_suite import SCENARIOS
from run_regression import main


@pytest.mark.parametrize("scenario", SCENARIOS, ids=lambda s: s.__name__)
def test_scenario(scenario):
    assert scenario()


def test_runner_filters_by_name(capsys):
    assert main(["poison", "berserk"]) == 0
    out = capsys.readouterr().out
    assert "scenario_poison_ticks_until_spent" in out
    assert "scenario_turn_limit_draw" not in out
    assert "2 passed, 0 failed" in out

    assert main(["no_such_battle"]) == 2
