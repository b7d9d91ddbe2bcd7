import pytest

from pnmflow import config
from pnmflow.utils import (
    PressureUnit,
    centipoise_to_pascal_seconds,
    convert_pressure,
    m2_to_millidarcy,
    micrometers_to_meters,
    millidarcy_to_m2,
)


@pytest.mark.parametrize(
    "value, unit, expected_pa",
    [
        (1.0, PressureUnit.PA, 1.0),
        (2.5, PressureUnit.KPA, 2500.0),
        (1.0, PressureUnit.BAR, 1e5),
        (1.0, PressureUnit.PSI, 6894.76),
    ],
)
def test_convert_pressure_to_pascal(value, unit, expected_pa):
    assert convert_pressure(value, unit) == pytest.approx(expected_pa)


def test_convert_pressure_between_units_accepts_strings():
    assert convert_pressure(1.0, "bar", "kPa") == pytest.approx(100.0)


def test_unknown_pressure_unit_raises():
    with pytest.raises(ValueError):
        convert_pressure(1.0, "atm")


def test_viscosity_and_length_conversions():
    assert centipoise_to_pascal_seconds(1.0) == pytest.approx(1e-3)
    assert micrometers_to_meters(5.0) == pytest.approx(5e-6)


def test_millidarcy_conversion_constants():
    assert m2_to_millidarcy(config.MILLIDARCY_IN_M2) == pytest.approx(1.0, rel=1e-6)
    assert millidarcy_to_m2(1000.0) == pytest.approx(config.DARCY_IN_M2)
