"""
Tests for configuration defaults and validation
"""

import pytest

from lanesignals.config import ConverterConfig, HierarchyLayer, validate_config


def test_defaults_are_valid():
    validate_config(ConverterConfig())


def test_errors_are_collected():
    config = ConverterConfig()
    config.set_highway_defaults("track", 7, 0, 20 / 3.6, 1.0, 300)
    config.clustering.pair_distance = 0
    config.add_hierarchy_layer(10, 0, 0, 10, hierarchy=3)

    with pytest.raises(ValueError) as excinfo:
        validate_config(config)

    message = str(excinfo.value)
    assert "highway 'track': lanes_per_direction must be positive" in message
    assert "clustering.pair_distance must be positive" in message
    assert "empty extent" in message


def test_split_phase_needs_room():
    config = ConverterConfig()
    config.timing.min_green_share = 20

    with pytest.raises(ValueError, match="no green for a split phase"):
        validate_config(config)


def test_hierarchy_layer_contains():
    layer = HierarchyLayer(0, 0, 100, 100, hierarchy=4)

    assert layer.contains(50, 50, 3)
    assert not layer.contains(50, 50, 5)
    assert not layer.contains(150, 50, 3)
    assert not layer.contains(0, 50, 3)  # boundary is outside
