"""Event key to attribute tables for each appliance type.

Every appliance type shares the common table; type specific tables add
the program options, settings and alerts of that appliance family.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING

from .const import (
    ACTIVE_PROGRAM_KEY,
    APPLIANCE_CONNECTED_KEY,
    POWER_STATE_KEY,
    REMAINING_PROGRAM_TIME_KEY,
    SELECTED_PROGRAM_KEY,
)
from .models import ApplianceType

if TYPE_CHECKING:
    from collections.abc import Mapping


class ValueTransform(StrEnum):
    """How a raw event value becomes an attribute value."""

    IDENTITY = "identity"
    ENUM_SUFFIX = "enum_suffix"
    DURATION = "duration"
    DISPLAY = "display"
    CONTACT = "contact"


@dataclass(frozen=True, slots=True)
class AttributeMapping:
    """Target attribute of a vendor key and the transform applied to it."""

    attribute: str
    transform: ValueTransform = ValueTransform.IDENTITY


MappingTable = dict[str, tuple[AttributeMapping, ...]]

_ID = ValueTransform.IDENTITY
_ENUM = ValueTransform.ENUM_SUFFIX
_TIME = ValueTransform.DURATION
_DISPLAY = ValueTransform.DISPLAY


def _one(attribute: str, transform: ValueTransform = _ID) -> tuple[AttributeMapping]:
    return (AttributeMapping(attribute, transform),)


def _alert(attribute: str) -> tuple[AttributeMapping, AttributeMapping]:
    """Alert events set their own attribute and the shared event state."""
    return (
        AttributeMapping(attribute, _ENUM),
        AttributeMapping("eventPresentState", _DISPLAY),
    )


COMMON: MappingTable = {
    APPLIANCE_CONNECTED_KEY: _one("connected"),
    "BSH.Common.Status.OperationState": _one("operationState", _ENUM),
    "BSH.Common.Status.DoorState": (
        AttributeMapping("doorState", _ENUM),
        AttributeMapping("contact", ValueTransform.CONTACT),
    ),
    "BSH.Common.Status.RemoteControlActive": _one("remoteControlActive"),
    "BSH.Common.Status.RemoteControlStartAllowed": _one("remoteControlStartAllowed"),
    "BSH.Common.Status.LocalControlActive": _one("localControlActive"),
    POWER_STATE_KEY: _one("powerState", _ENUM),
    "BSH.Common.Setting.ChildLock": _one("childLock"),
    ACTIVE_PROGRAM_KEY: _one("activeProgram", _DISPLAY),
    SELECTED_PROGRAM_KEY: _one("selectedProgram", _DISPLAY),
    "BSH.Common.Option.ProgramProgress": _one("programProgress"),
    REMAINING_PROGRAM_TIME_KEY: (
        AttributeMapping("remainingProgramTime", _TIME),
        AttributeMapping("remainingTime"),
    ),
    "BSH.Common.Option.ElapsedProgramTime": (
        AttributeMapping("elapsedProgramTime", _TIME),
        AttributeMapping("elapsedTime"),
    ),
    "BSH.Common.Option.StartInRelative": _one("startInRelative", _TIME),
    "BSH.Common.Event.ProgramFinished": _alert("programFinished"),
    "BSH.Common.Event.ProgramAborted": _alert("programAborted"),
    "BSH.Common.Event.AlarmClockElapsed": _alert("alarmClockElapsed"),
}

COFFEE_MAKER: MappingTable = {
    "ConsumerProducts.CoffeeMaker.Option.BeanAmount": _one("beanAmount", _ENUM),
    "ConsumerProducts.CoffeeMaker.Option.FillQuantity": _one("fillQuantity"),
    "ConsumerProducts.CoffeeMaker.Option.CoffeeTemperature": _one(
        "coffeeTemperature", _ENUM
    ),
    "ConsumerProducts.CoffeeMaker.Event.BeanContainerEmpty": _alert(
        "beanContainerEmpty"
    ),
    "ConsumerProducts.CoffeeMaker.Event.WaterTankEmpty": _alert("waterTankEmpty"),
    "ConsumerProducts.CoffeeMaker.Event.DripTrayFull": _alert("dripTrayFull"),
}

DISHWASHER: MappingTable = {
    "Dishcare.Dishwasher.Option.IntensivZone": _one("intensivZone"),
    "Dishcare.Dishwasher.Option.BrillianceDry": _one("brillianceDry"),
    "Dishcare.Dishwasher.Option.VarioSpeedPlus": _one("varioSpeedPlus"),
    "Dishcare.Dishwasher.Option.SilenceOnDemand": _one("silenceOnDemand"),
    "Dishcare.Dishwasher.Option.HalfLoad": _one("halfLoad"),
    "Dishcare.Dishwasher.Option.ExtraDry": _one("extraDry"),
    "Dishcare.Dishwasher.Option.HygienePlus": _one("hygienePlus"),
    "Dishcare.Dishwasher.Event.RinseAidNearlyEmpty": _alert("rinseAidNearlyEmpty"),
    "Dishcare.Dishwasher.Event.SaltNearlyEmpty": _alert("saltNearlyEmpty"),
}

_LAUNDRY: MappingTable = {
    "LaundryCare.Common.Option.VarioPerfect": _one("varioPerfect", _ENUM),
    "BSH.Common.Option.EstimatedTotalProgramTime": _one(
        "estimatedTotalProgramTime", _TIME
    ),
}

WASHER: MappingTable = {
    **_LAUNDRY,
    "LaundryCare.Washer.Option.Temperature": _one("temperature", _ENUM),
    "LaundryCare.Washer.Option.SpinSpeed": _one("spinSpeed", _ENUM),
    "LaundryCare.Washer.Event.IDos1FillLevelPoor": _alert("iDos1FillLevelPoor"),
    "LaundryCare.Washer.Event.IDos2FillLevelPoor": _alert("iDos2FillLevelPoor"),
}

DRYER: MappingTable = {
    **_LAUNDRY,
    "LaundryCare.Dryer.Option.DryingTarget": _one("dryingTarget", _ENUM),
    "LaundryCare.Dryer.Event.DryingProcessFinished": _alert("dryingProcessFinished"),
}

WASHER_DRYER: MappingTable = {**WASHER, **DRYER}

_FRIDGE_COMMON: MappingTable = {
    "Refrigeration.Common.Setting.SabbathMode": _one("sabbathMode"),
    "Refrigeration.Common.Setting.FreshMode": _one("freshMode"),
    "Refrigeration.Common.Setting.VacationMode": _one("vacationMode"),
    "Refrigeration.Common.Setting.EcoMode": _one("ecoMode"),
}

FRIDGE_FREEZER: MappingTable = {
    **_FRIDGE_COMMON,
    "Refrigeration.FridgeFreezer.Setting.SetpointTemperatureRefrigerator": _one(
        "setpointTemperatureRefrigerator"
    ),
    "Refrigeration.FridgeFreezer.Setting.SetpointTemperatureFreezer": _one(
        "setpointTemperatureFreezer"
    ),
    "Refrigeration.FridgeFreezer.Setting.SuperModeRefrigerator": _one(
        "superModeRefrigerator"
    ),
    "Refrigeration.FridgeFreezer.Setting.SuperModeFreezer": _one("superModeFreezer"),
    "Refrigeration.FridgeFreezer.Event.DoorAlarmFreezer": _alert("doorAlarmFreezer"),
    "Refrigeration.FridgeFreezer.Event.DoorAlarmRefrigerator": _alert(
        "doorAlarmRefrigerator"
    ),
    "Refrigeration.FridgeFreezer.Event.TemperatureAlarmFreezer": _alert(
        "temperatureAlarmFreezer"
    ),
}

WINE_COOLER: MappingTable = {
    **_FRIDGE_COMMON,
    "Refrigeration.Common.Setting.WineCompartment.SetpointTemperature": _one(
        "wineCompartmentSetpointTemperature"
    ),
    "Refrigeration.Common.Setting.WineCompartment2.SetpointTemperature": _one(
        "wineCompartment2SetpointTemperature"
    ),
    "Refrigeration.Common.Setting.WineCompartment3.SetpointTemperature": _one(
        "wineCompartment3SetpointTemperature"
    ),
}

OVEN: MappingTable = {
    "Cooking.Oven.Status.CurrentCavityTemperature": _one("currentCavityTemperature"),
    "Cooking.Oven.Option.SetpointTemperature": _one("setpointTemperature"),
    "BSH.Common.Option.Duration": _one("duration", _TIME),
    "Cooking.Oven.Option.FastPreHeat": _one("fastPreHeat"),
    "Cooking.Oven.Event.PreheatFinished": _alert("preheatFinished"),
}

HOB: MappingTable = {
    "Cooking.Hob.Event.PreheatFinished": _alert("preheatFinished"),
}

HOOD: MappingTable = {
    "Cooking.Common.Option.Hood.VentingLevel": _one("ventingLevel", _ENUM),
    "Cooking.Common.Option.Hood.IntensiveLevel": _one("intensiveLevel", _ENUM),
    "Cooking.Common.Setting.Lighting": _one("lighting"),
    "Cooking.Common.Setting.LightingBrightness": _one("lightingBrightness"),
    "Cooking.Hood.Event.GreaseFilterMaxSaturationNearlyReached": _alert(
        "greaseFilterMaxSaturationNearlyReached"
    ),
    "Cooking.Hood.Event.GreaseFilterMaxSaturationReached": _alert(
        "greaseFilterMaxSaturationReached"
    ),
}

CLEANING_ROBOT: MappingTable = {
    "BSH.Common.Status.BatteryLevel": _one("batteryLevel"),
    "ConsumerProducts.CleaningRobot.Option.ProcessPhase": _one("processPhase", _ENUM),
    "ConsumerProducts.CleaningRobot.Option.CleaningMode": _one("cleaningMode", _ENUM),
    "ConsumerProducts.CleaningRobot.Event.EmptyDustBoxAndCleanFilter": _alert(
        "emptyDustBoxAndCleanFilter"
    ),
    "ConsumerProducts.CleaningRobot.Event.RobotIsStuck": _alert("robotIsStuck"),
    "ConsumerProducts.CleaningRobot.Event.DockingStationNotFound": _alert(
        "dockingStationNotFound"
    ),
}

COOK_PROCESSOR: MappingTable = {}

_TYPE_TABLES: dict[ApplianceType, MappingTable] = {
    ApplianceType.COFFEE_MAKER: COFFEE_MAKER,
    ApplianceType.DISHWASHER: DISHWASHER,
    ApplianceType.DRYER: DRYER,
    ApplianceType.FRIDGE_FREEZER: FRIDGE_FREEZER,
    ApplianceType.HOB: HOB,
    ApplianceType.HOOD: HOOD,
    ApplianceType.OVEN: OVEN,
    ApplianceType.WASHER: WASHER,
    ApplianceType.WASHER_DRYER: WASHER_DRYER,
    ApplianceType.CLEANING_ROBOT: CLEANING_ROBOT,
    ApplianceType.COOK_PROCESSOR: COOK_PROCESSOR,
    ApplianceType.WINE_COOLER: WINE_COOLER,
}


def mapping_table(
    appliance_type: ApplianceType,
) -> Mapping[str, tuple[AttributeMapping, ...]]:
    """Return the read-only mapping table for an appliance type."""
    return MappingProxyType({**COMMON, **_TYPE_TABLES[appliance_type]})
