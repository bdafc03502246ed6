"""Tests for recipe models and value objects."""

from common.types import ChunkRange, FluidStackData, ItemStackData
from recipes.models import (
    ChancedItemOutput,
    GenericRecipeData,
    GregTechRecipeData,
    ItemMetadata,
    RawRecipeData,
    VanillaRecipeData,
    VanillaRecipeType,
    VoltageTier,
)


class TestItemStackData:
    """Test item stack serialization."""

    def test_default_stack(self):
        stack = ItemStackData('minecraft:stick')

        assert stack.count == 1
        assert stack.is_consumed
        assert stack.to_json_map() == {'itemId': 'minecraft:stick', 'count': 1}

    def test_not_consumed_is_emitted(self):
        stack = ItemStackData.not_consumed('gtceu:programmed_circuit')

        assert not stack.is_consumed
        assert stack.to_json_map()['consumed'] is False

    def test_explicit_consumed_true_is_omitted(self):
        stack = ItemStackData('minecraft:coal', consumed=True)

        assert 'consumed' not in stack.to_json_map()

    def test_nbt_included_when_present(self):
        stack = ItemStackData('minecraft:enchanted_book', nbt={})

        assert not stack.has_nbt
        assert 'nbt' not in stack.to_json_map()

        stack = ItemStackData('minecraft:potion', nbt={'Potion': 'minecraft:healing'})
        assert stack.to_json_map()['nbt'] == {'Potion': 'minecraft:healing'}

    def test_stacks_with_nbt_are_hashable(self):
        stack = ItemStackData('minecraft:potion', nbt={'Potion': 'minecraft:healing'})

        assert stack in {stack}

    def test_fluid_stack(self):
        assert FluidStackData('minecraft:water', 1000).to_json_map() == {
            'fluidId': 'minecraft:water',
            'amount': 1000,
        }

    def test_chunk_range_size(self):
        assert ChunkRange(index=2, start=10, end=15).size == 5


class TestVanillaRecipeData:
    """Test vanilla recipe shapes."""

    def test_shaped(self, iron_ingot_recipe):
        data = iron_ingot_recipe.to_json_map()

        assert iron_ingot_recipe.type == 'minecraft:crafting_shaped'
        assert data['pattern'] == ['###', '###', '###']
        assert data['key']['#'] == {'itemId': 'minecraft:iron_nugget', 'count': 1}
        assert data['output'] == {'itemId': 'minecraft:iron_ingot', 'count': 1}
        assert iron_ingot_recipe.output_item_id == 'minecraft:iron_ingot'

    def test_smelting(self):
        recipe = VanillaRecipeData(
            id='minecraft:iron_ingot_from_smelting',
            recipe_type=VanillaRecipeType.SMELTING,
            input=ItemStackData('minecraft:raw_iron'),
            experience=0.7,
            cooking_time=200,
            output=ItemStackData('minecraft:iron_ingot'),
        )
        data = recipe.to_json_map()

        assert data['type'] == 'minecraft:smelting'
        assert data['input'] == {'itemId': 'minecraft:raw_iron', 'count': 1}
        assert data['experience'] == 0.7
        assert data['cookingTime'] == 200
        assert 'pattern' not in data

    def test_smithing_only_emits_present_slots(self):
        recipe = VanillaRecipeData(
            id='minecraft:netherite_sword_smithing',
            recipe_type=VanillaRecipeType.SMITHING_TRANSFORM,
            template=ItemStackData('minecraft:netherite_upgrade_smithing_template'),
            base=ItemStackData('minecraft:diamond_sword'),
            output=ItemStackData('minecraft:netherite_sword'),
        )
        data = recipe.to_json_map()

        assert 'template' in data
        assert 'base' in data
        assert 'addition' not in data

    def test_source_mod_defaults_to_minecraft(self, iron_ingot_recipe):
        assert iron_ingot_recipe.source_mod == 'minecraft'


class TestGregTechRecipeData:
    """Test machine recipes with voltage tiers."""

    def test_voltage_tier_derived_from_eu(self):
        recipe = GregTechRecipeData(id='gtceu:electrolyzer/water', eu_per_tick=30)

        assert recipe.voltage_tier is VoltageTier.LV
        recipe.eu_per_tick = 480
        assert recipe.voltage_tier is VoltageTier.HV

    def test_generator_uses_absolute_eu(self):
        assert VoltageTier.from_eu_t(-32) is VoltageTier.LV

    def test_json_shape(self):
        recipe = GregTechRecipeData(
            id='gtceu:macerator/iron_ore',
            machine_type='macerator',
            eu_per_tick=2,
            duration=400,
            input_items=[ItemStackData('minecraft:iron_ore')],
            output_items=[
                ChancedItemOutput('gtceu:crushed_iron_ore', count=2),
                ChancedItemOutput('gtceu:stone_dust', chance=0.5, boost_per_tier=0.1),
            ],
            circuit=1,
        )
        data = recipe.to_json_map()

        assert data['voltageTier'] == 'ULV'
        assert data['machineType'] == 'macerator'
        assert data['circuit'] == 1
        assert data['outputs']['items'][1] == {
            'itemId': 'gtceu:stone_dust',
            'count': 1,
            'chance': 0.5,
            'boostPerTier': 0.1,
        }
        assert 'specialConditions' not in data

    def test_special_conditions(self):
        recipe = GregTechRecipeData(id='gtceu:ebf/steel', eu_per_tick=120)
        conditions = recipe.get_or_create_conditions()
        conditions.coil_tier = 1800
        conditions.cleanroom = True

        assert recipe.get_or_create_conditions() is conditions
        assert recipe.to_json_map()['specialConditions'] == {'cleanroom': True, 'coilTier': 1800}

    def test_fluid_only_output_counts_as_output(self):
        recipe = GregTechRecipeData(
            id='gtceu:centrifuge/air',
            output_fluids=[FluidStackData('gtceu:nitrogen', 3900)],
        )

        assert recipe.output_item_id is None
        assert recipe.has_outputs()


class TestOtherRecipes:
    """Test generic and raw recipe records."""

    def test_generic_recipe(self):
        recipe = GenericRecipeData(
            id='create:milling/wheat',
            type='create:milling',
            machine_type='millstone',
            duration=150,
            input_items=[ItemStackData('minecraft:wheat')],
            output_items=[ItemStackData('create:wheat_flour')],
        )
        data = recipe.to_json_map()

        assert recipe.source_mod == 'unknown'
        assert data['inputs']['items'] == [{'itemId': 'minecraft:wheat', 'count': 1}]
        assert 'fluids' not in data['inputs']
        assert recipe.output_item_id == 'create:wheat_flour'

    def test_raw_recipe_output_lookup(self):
        recipe = RawRecipeData(
            id='create:crushing/iron_ore',
            type='create:crushing',
            data={'outputs': {'items': [{'itemId': 'create:crushed_raw_iron'}]}},
        )

        assert recipe.output_item_id == 'create:crushed_raw_iron'
        assert recipe.to_json_map()['type'] == 'create:crushing'

    def test_raw_recipe_without_outputs(self):
        recipe = RawRecipeData(id='x:y', type='x:z', data={})

        assert not recipe.has_outputs()

    def test_item_metadata(self):
        item = ItemMetadata(
            item_id='minecraft:iron_ingot',
            display_name='Iron Ingot',
            tooltip_lines=['Smelted from raw iron'],
            creative_tab='ingredients',
        )

        assert item.to_json_map() == {
            'itemId': 'minecraft:iron_ingot',
            'displayName': 'Iron Ingot',
            'tooltipLines': ['Smelted from raw iron'],
            'creativeTab': 'ingredients',
        }
