"""Canonical recipe record shapes that every provider normalizes into."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from common.types import FluidStackData, ItemStackData


@dataclass
class RecipeData(ABC):
    """
    Base recipe record.

    id is namespace-qualified and stable across sync runs; it is the dedup
    key on the client and the merge key on the server.
    """
    id: Optional[str] = None
    type: Optional[str] = None
    source_mod: Optional[str] = None

    @property
    @abstractmethod
    def output_item_id(self) -> Optional[str]:
        """Primary output item, used for per-item lookups."""

    @abstractmethod
    def to_json_map(self) -> Dict[str, Any]:
        """Flatten the recipe into JSON-compatible data."""

    def has_outputs(self) -> bool:
        return self.output_item_id is not None


def _items(stacks) -> List[Dict[str, Any]]:
    return [stack.to_json_map() for stack in stacks]


@dataclass
class GenericRecipeData(RecipeData):
    """Recipe from any machine-style source that has no dedicated model."""
    source_mod: Optional[str] = "unknown"
    machine_type: Optional[str] = None
    energy: Optional[int] = None
    duration: Optional[int] = None
    input_items: List[ItemStackData] = field(default_factory=list)
    input_fluids: List[FluidStackData] = field(default_factory=list)
    extra_inputs: Dict[str, Any] = field(default_factory=dict)
    output_items: List[ItemStackData] = field(default_factory=list)
    output_fluids: List[FluidStackData] = field(default_factory=list)
    extra_outputs: Dict[str, Any] = field(default_factory=dict)
    conditions: Dict[str, Any] = field(default_factory=dict)

    @property
    def output_item_id(self) -> Optional[str]:
        return self.output_items[0].item_id if self.output_items else None

    def to_json_map(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type}
        if self.machine_type is not None:
            data["machineType"] = self.machine_type
        if self.energy is not None:
            data["energy"] = self.energy
        if self.duration is not None:
            data["duration"] = self.duration

        inputs: Dict[str, Any] = {"items": _items(self.input_items)}
        if self.input_fluids:
            inputs["fluids"] = _items(self.input_fluids)
        inputs.update(self.extra_inputs)
        data["inputs"] = inputs

        outputs: Dict[str, Any] = {"items": _items(self.output_items)}
        if self.output_fluids:
            outputs["fluids"] = _items(self.output_fluids)
        outputs.update(self.extra_outputs)
        data["outputs"] = outputs

        if self.conditions:
            data["conditions"] = dict(self.conditions)
        return data


class VanillaRecipeType(Enum):
    CRAFTING_SHAPED = "minecraft:crafting_shaped"
    CRAFTING_SHAPELESS = "minecraft:crafting_shapeless"
    SMELTING = "minecraft:smelting"
    BLASTING = "minecraft:blasting"
    SMOKING = "minecraft:smoking"
    CAMPFIRE_COOKING = "minecraft:campfire_cooking"
    STONECUTTING = "minecraft:stonecutting"
    SMITHING_TRANSFORM = "minecraft:smithing_transform"
    SMITHING_TRIM = "minecraft:smithing_trim"

    @property
    def is_cooking(self) -> bool:
        return self in (
            VanillaRecipeType.SMELTING,
            VanillaRecipeType.BLASTING,
            VanillaRecipeType.SMOKING,
            VanillaRecipeType.CAMPFIRE_COOKING,
        )

    @property
    def is_smithing(self) -> bool:
        return self in (VanillaRecipeType.SMITHING_TRANSFORM, VanillaRecipeType.SMITHING_TRIM)


@dataclass
class VanillaRecipeData(RecipeData):
    """
    Recipe from the base game's own recipe types.

    Which fields are meaningful depends on recipe_type: pattern and key for
    shaped crafting, ingredients for shapeless, input plus cooking data for
    furnace-style recipes, template/base/addition for smithing.
    """
    source_mod: Optional[str] = "minecraft"
    recipe_type: VanillaRecipeType = VanillaRecipeType.CRAFTING_SHAPED
    pattern: List[str] = field(default_factory=list)
    key: Dict[str, ItemStackData] = field(default_factory=dict)
    ingredients: List[ItemStackData] = field(default_factory=list)
    input: Optional[ItemStackData] = None
    experience: float = 0.0
    cooking_time: int = 0
    template: Optional[ItemStackData] = None
    base: Optional[ItemStackData] = None
    addition: Optional[ItemStackData] = None
    output: Optional[ItemStackData] = None

    def __post_init__(self):
        if self.type is None:
            self.type = self.recipe_type.value

    @property
    def output_item_id(self) -> Optional[str]:
        return self.output.item_id if self.output is not None else None

    def to_json_map(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type}
        recipe_type = self.recipe_type

        if recipe_type is VanillaRecipeType.CRAFTING_SHAPED:
            data["pattern"] = list(self.pattern)
            if self.key:
                data["key"] = {symbol: stack.to_json_map() for symbol, stack in self.key.items()}
        elif recipe_type is VanillaRecipeType.CRAFTING_SHAPELESS:
            if self.ingredients:
                data["ingredients"] = _items(self.ingredients)
        elif recipe_type.is_cooking:
            data["input"] = self.input.to_json_map() if self.input else None
            data["experience"] = self.experience
            data["cookingTime"] = self.cooking_time
        elif recipe_type is VanillaRecipeType.STONECUTTING:
            data["input"] = self.input.to_json_map() if self.input else None
        elif recipe_type.is_smithing:
            for name in ("template", "base", "addition"):
                stack = getattr(self, name)
                if stack is not None:
                    data[name] = stack.to_json_map()

        if self.output is not None:
            data["output"] = self.output.to_json_map()
        return data


class VoltageTier(Enum):
    ULV = 8
    LV = 32
    MV = 128
    HV = 512
    EV = 2048
    IV = 8192
    LuV = 32768
    ZPM = 131072
    UV = 524288
    UHV = 2097152
    UEV = 8388608
    UIV = 33554432
    UXV = 134217728
    OpV = 536870912
    MAX = 2147483647

    @property
    def voltage(self) -> int:
        return self.value

    @classmethod
    def from_eu_t(cls, eu_per_tick: int) -> 'VoltageTier':
        """Lowest tier that can supply the given EU/t (generators report negative values)."""
        amount = abs(eu_per_tick)
        for tier in cls:
            if amount <= tier.voltage:
                return tier
        return cls.MAX


@dataclass(frozen=True)
class ChancedItemOutput(ItemStackData):
    """Output stack that is only produced with a given probability."""
    chance: Optional[float] = None
    boost_per_tier: Optional[float] = None

    @property
    def is_chanced(self) -> bool:
        return self.chance is not None and self.chance < 1.0

    def to_json_map(self) -> Dict[str, Any]:
        data = super().to_json_map()
        if self.chance is not None:
            data["chance"] = self.chance
        if self.boost_per_tier is not None:
            data["boostPerTier"] = self.boost_per_tier
        return data


@dataclass
class SpecialConditions:
    cleanroom: bool = False
    vacuum: bool = False
    coil_tier: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.cleanroom and not self.vacuum and self.coil_tier is None and not self.extra

    def to_json_map(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.cleanroom:
            data["cleanroom"] = True
        if self.vacuum:
            data["vacuum"] = True
        if self.coil_tier is not None:
            data["coilTier"] = self.coil_tier
        data.update(self.extra)
        return data


@dataclass
class GregTechRecipeData(RecipeData):
    """
    Machine recipe with voltage tier, chanced outputs and special conditions.

    voltage_tier is derived from eu_per_tick.
    """
    type: Optional[str] = "gregtech:machine"
    source_mod: Optional[str] = "gtceu"
    machine_type: Optional[str] = None
    eu_per_tick: int = 0
    duration: int = 0
    input_items: List[ItemStackData] = field(default_factory=list)
    input_fluids: List[FluidStackData] = field(default_factory=list)
    output_items: List[ChancedItemOutput] = field(default_factory=list)
    output_fluids: List[FluidStackData] = field(default_factory=list)
    special_conditions: Optional[SpecialConditions] = None
    circuit: Optional[int] = None

    @property
    def voltage_tier(self) -> VoltageTier:
        return VoltageTier.from_eu_t(self.eu_per_tick)

    def get_or_create_conditions(self) -> SpecialConditions:
        if self.special_conditions is None:
            self.special_conditions = SpecialConditions()
        return self.special_conditions

    @property
    def output_item_id(self) -> Optional[str]:
        return self.output_items[0].item_id if self.output_items else None

    def has_outputs(self) -> bool:
        return bool(self.output_items) or bool(self.output_fluids)

    def to_json_map(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.type,
            "machineType": self.machine_type,
            "voltageTier": self.voltage_tier.name,
            "euPerTick": self.eu_per_tick,
            "duration": self.duration,
        }
        if self.circuit is not None:
            data["circuit"] = self.circuit
        data["inputs"] = {
            "items": _items(self.input_items),
            "fluids": _items(self.input_fluids),
        }
        data["outputs"] = {
            "items": _items(self.output_items),
            "fluids": _items(self.output_fluids),
        }
        if self.special_conditions is not None and not self.special_conditions.is_empty():
            data["specialConditions"] = self.special_conditions.to_json_map()
        return data


@dataclass
class RawRecipeData(RecipeData):
    """
    Recipe whose data map is already normalized, e.g. loaded from an export file.
    """
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def output_item_id(self) -> Optional[str]:
        outputs = self.data.get("outputs")
        if isinstance(outputs, dict):
            items = outputs.get("items") or []
            if items and isinstance(items[0], dict):
                return items[0].get("itemId")
        output = self.data.get("output")
        if isinstance(output, dict):
            return output.get("itemId")
        return None

    def has_outputs(self) -> bool:
        if self.output_item_id is not None:
            return True
        outputs = self.data.get("outputs")
        return isinstance(outputs, dict) and bool(outputs.get("fluids"))

    def to_json_map(self) -> Dict[str, Any]:
        data = dict(self.data)
        data.setdefault("type", self.type)
        return data


@dataclass
class ItemMetadata:
    """Display information for one item, uploaded alongside recipes."""
    item_id: str
    display_name: str
    tooltip_lines: List[str] = field(default_factory=list)
    shift_tooltip_lines: Optional[List[str]] = None
    creative_tab: Optional[str] = None
    sort_order: Optional[int] = None

    def to_json_map(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"itemId": self.item_id, "displayName": self.display_name}
        if self.tooltip_lines:
            data["tooltipLines"] = list(self.tooltip_lines)
        if self.shift_tooltip_lines:
            data["shiftTooltipLines"] = list(self.shift_tooltip_lines)
        if self.creative_tab is not None:
            data["creativeTab"] = self.creative_tab
        if self.sort_order is not None:
            data["sortOrder"] = self.sort_order
        return data
