"""Tests for LayoutOptions."""

import dataclasses
import math

import pytest

from molscape.options import LayoutOptions


def test_defaults():
    opts = LayoutOptions()
    assert opts.bond_length == 30.0
    assert opts.bond_spacing == pytest.approx(5.1)
    assert opts.overlap_sensitivity == 0.42
    assert opts.overlap_resolution_iterations == 1
    assert opts.kk_max_iteration == 20000
    assert opts.isomeric is True
    assert opts.explicit_hydrogens is True
    assert opts.finetune_overlap is False
    assert opts.rotate_drawing is False
    assert opts.validate() == []


def test_options_are_frozen():
    with pytest.raises(dataclasses.FrozenInstanceError):
        LayoutOptions().bond_length = 10.0


def test_with_overrides_returns_copy():
    base = LayoutOptions()
    derived = base.with_overrides(bond_length=20.0, isomeric=False)
    assert derived.bond_length == 20.0
    assert derived.isomeric is False
    assert base.bond_length == 30.0


def test_unknown_override_rejected():
    with pytest.raises(ValueError, match="bond_lenght"):
        LayoutOptions().with_overrides(bond_lenght=1.0)


def test_dict_round_trip():
    opts = LayoutOptions(finetune_overlap=True, kk_threshold=0.5)
    assert LayoutOptions.from_dict(opts.to_dict()) == opts


@pytest.mark.parametrize(
    "overrides",
    [
        {"bond_length": 0.0},
        {"bond_length": -1.0},
        {"bond_length": math.nan},
        {"kk_threshold": -0.1},
        {"finetune_timeout": math.inf},
        {"kk_max_iteration": -1},
        {"overlap_resolution_iterations": 1.5},
        {"finetune_max_steps": True},
    ],
)
def test_invalid_values_reported(overrides):
    opts = LayoutOptions().with_overrides(**overrides)
    errors = opts.validate()
    assert errors
    assert next(iter(overrides)) in errors[0]
    with pytest.raises(ValueError):
        opts.ensure_valid()
