from aecnr import (
    Strategy,
    compose,
    parse_processing_config,
    process_recording,
    simulate_scene,
)


def test_public_imports() -> None:
    assert Strategy is not None
    assert compose is not None
    assert parse_processing_config is not None
    assert process_recording is not None
    assert simulate_scene is not None


def test_strategy_names_are_stable() -> None:
    assert Strategy.names() == ["MWF", "MWFext", "AEC-NR", "NR-AEC", "NRext-AEC-PF"]
