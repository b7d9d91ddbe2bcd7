from __future__ import annotations

from enum import StrEnum

from pnmflow import config


class PressureUnit(StrEnum):
    PA = "Pa"
    KPA = "kPa"
    BAR = "bar"
    PSI = "psi"


PRESSURE_UNIT_TO_PA: dict[PressureUnit, float] = {
    PressureUnit.PA: 1.0,
    PressureUnit.KPA: 1000.0,
    PressureUnit.BAR: 100000.0,
    PressureUnit.PSI: 6894.76,
}


def convert_pressure(value: float, from_unit: PressureUnit | str, to_unit: PressureUnit | str = PressureUnit.PA) -> float:
    """
    Convert a pressure between the supported units.

    Args:
        value: Pressure expressed in ``from_unit``.
        from_unit: Unit of ``value``.
        to_unit: Requested unit, Pascal by default.

    Returns:
        The pressure expressed in ``to_unit``.
    """
    pa = value * PRESSURE_UNIT_TO_PA[PressureUnit(from_unit)]
    return pa / PRESSURE_UNIT_TO_PA[PressureUnit(to_unit)]


def centipoise_to_pascal_seconds(viscosity: float) -> float:
    """Convert dynamic viscosity from cP to Pa·s."""
    return viscosity * config.CENTIPOISE


def micrometers_to_meters(length: float) -> float:
    """Convert a length from μm to m."""
    return length * config.MICROMETER


def m2_to_millidarcy(permeability: float) -> float:
    """Convert permeability from m² to mD."""
    return permeability * config.M2_TO_MILLIDARCY


def millidarcy_to_m2(permeability: float) -> float:
    """Convert permeability from mD to m²."""
    return permeability * config.MILLIDARCY_IN_M2
