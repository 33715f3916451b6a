"""
Built-in protocols.

Each protocol has six cards, values 0 to 5. Card structure:
- Top box: passive rules, value modifiers and reactive triggers, active
  while the card is face-up (covered or not)
- Middle box: on-play effects
- Bottom box: on-cover and start/end effects, active while uncovered
"""

from __future__ import annotations

from ..engine_core.state import Card
from ..spec_schema.card_catalog import define_card
from ..spec_schema.effect_dsl import (
    EffectPosition,
    EffectTrigger,
    as_trigger,
    block_compile_effect,
    choice_effect,
    delete_effect,
    discard_effect,
    draw_effect,
    flip_effect,
    if_executed,
    passive_rule,
    play_effect,
    rearrange_effect,
    refresh_effect,
    return_effect,
    shift_effect,
    swap_effect,
    target_filter,
    then,
    value_modifier,
)


def _discard_one(protocol: str) -> Card:
    prefix = protocol.lower()
    return define_card(
        protocol, 5,
        middle="Discard 1 card.",
        middle_effects=[discard_effect(f"{prefix}5_discard")],
    )


# ============================================================================
# Fire
# ============================================================================

FIRE = [
    define_card(
        "Fire", 0,
        middle="Flip 1 other card. Draw 2 cards.",
        bottom="When this card would be covered: First, draw 1 card and flip 1 other card.",
        middle_effects=[flip_effect("fire0_flip"), draw_effect("fire0_draw", 2)],
        bottom_effects=[
            as_trigger(draw_effect("fire0_cover_draw"), EffectTrigger.ON_COVER, EffectPosition.BOTTOM),
            as_trigger(flip_effect("fire0_cover_flip"), EffectTrigger.ON_COVER, EffectPosition.BOTTOM),
        ],
    ),
    define_card(
        "Fire", 1,
        middle="Discard 1 card. If you do, delete 1 card.",
        middle_effects=[if_executed(discard_effect("fire1_discard"), delete_effect("fire1_delete"))],
    ),
    define_card(
        "Fire", 2,
        middle="Discard 1 card. If you do, return 1 card.",
        middle_effects=[if_executed(discard_effect("fire2_discard"), return_effect("fire2_return"))],
    ),
    define_card(
        "Fire", 3,
        bottom="End: You may discard 1 card. If you do, flip 1 card.",
        bottom_effects=[as_trigger(
            if_executed(discard_effect("fire3_discard", optional=True), flip_effect("fire3_flip")),
            EffectTrigger.END,
            EffectPosition.BOTTOM,
        )],
    ),
    define_card(
        "Fire", 4,
        middle="Discard 1 or more cards. Draw the amount discarded plus 1.",
        middle_effects=[if_executed(
            discard_effect("fire4_discard", variable_count=True),
            draw_effect("fire4_draw", count="equal_to_discarded", count_offset=1),
        )],
    ),
    _discard_one("Fire"),
]


# ============================================================================
# Darkness
# ============================================================================

DARKNESS = [
    define_card(
        "Darkness", 0,
        middle="Draw 3 cards. Shift 1 of your opponent's covered cards.",
        middle_effects=[
            draw_effect("darkness0_draw", 3),
            shift_effect("darkness0_shift", owner="opponent", position="covered"),
        ],
    ),
    define_card(
        "Darkness", 1,
        middle="Flip 1 of your opponent's cards. You may shift that card.",
        middle_effects=[then(
            flip_effect("darkness1_flip", owner="opponent"),
            shift_effect("darkness1_shift", use_card_from_previous_effect=True, optional=True),
        )],
    ),
    define_card(
        "Darkness", 2,
        top="All face-down cards in this stack have a value of 4.",
        middle="You may flip 1 covered card in this line.",
        top_effects=[value_modifier(
            "darkness2_value", "set_to_fixed", 4, target="own_cards", face_state="face_down",
        )],
        middle_effects=[flip_effect("darkness2_flip", position="covered", scope="this_lane", optional=True)],
    ),
    define_card(
        "Darkness", 3,
        middle="Play 1 card face-down in another line.",
        middle_effects=[play_effect("darkness3_play", source="hand", face_down=True, destination="other_lanes")],
    ),
    define_card(
        "Darkness", 4,
        middle="Shift 1 face-down card.",
        middle_effects=[shift_effect("darkness4_shift", face_state="face_down")],
    ),
    _discard_one("Darkness"),
]


# ============================================================================
# Water
# ============================================================================

WATER = [
    define_card(
        "Water", 0,
        middle="Flip 1 other card. Flip this card.",
        middle_effects=[flip_effect("water0_flip"), flip_effect("water0_flip_self", flip_self=True)],
    ),
    define_card(
        "Water", 1,
        middle="Play the top card of your deck face-down in each other line.",
        middle_effects=[play_effect("water1_play", source="deck", face_down=True, destination="each_other_line")],
    ),
    define_card(
        "Water", 2,
        middle="Draw 2 cards. Rearrange your protocols.",
        middle_effects=[draw_effect("water2_draw", 2), rearrange_effect("water2_rearrange")],
    ),
    define_card(
        "Water", 3,
        middle="Return all cards with a value of 2 in 1 line.",
        middle_effects=[return_effect(
            "water3_return",
            count="all",
            select_lane=True,
            target_filter=target_filter(position="any", value_equals=2),
        )],
    ),
    define_card(
        "Water", 4,
        middle="Return 1 of your cards.",
        middle_effects=[return_effect("water4_return", owner="own")],
    ),
    _discard_one("Water"),
]


# ============================================================================
# Death
# ============================================================================

DEATH = [
    define_card(
        "Death", 0,
        middle="Delete 1 card from each other line.",
        middle_effects=[delete_effect("death0_delete", scope="each_other_line")],
    ),
    define_card(
        "Death", 1,
        top="Start: You may draw 1 card. If you do, delete 1 other card, then delete this card.",
        top_effects=[as_trigger(
            if_executed(
                draw_effect("death1_draw", optional=True),
                then(delete_effect("death1_delete"), delete_effect("death1_delete_self", delete_self=True)),
            ),
            EffectTrigger.START,
            EffectPosition.TOP,
        )],
    ),
    define_card(
        "Death", 2,
        middle="Delete all cards in 1 line with values of 1 or 2.",
        middle_effects=[delete_effect(
            "death2_delete",
            count="all",
            select_lane=True,
            target_filter=target_filter(position="any", value_range=(1, 2)),
        )],
    ),
    define_card(
        "Death", 3,
        middle="Delete 1 face-down card.",
        middle_effects=[delete_effect("death3_delete", face_state="face_down")],
    ),
    define_card(
        "Death", 4,
        middle="Delete a card with a value of 0 or 1.",
        middle_effects=[delete_effect("death4_delete", target_filter=target_filter(value_range=(0, 1)))],
    ),
    _discard_one("Death"),
]


# ============================================================================
# Hate
# ============================================================================

HATE = [
    define_card(
        "Hate", 0,
        middle="Delete 1 card.",
        middle_effects=[delete_effect("hate0_delete")],
    ),
    define_card(
        "Hate", 1,
        middle="Discard 3 cards. Delete 1 card. Delete 1 card.",
        middle_effects=[
            discard_effect("hate1_discard", 3),
            delete_effect("hate1_delete_a"),
            delete_effect("hate1_delete_b"),
        ],
    ),
    define_card(
        "Hate", 2,
        middle="Delete your highest value uncovered card. Delete your opponent's highest value uncovered card.",
        middle_effects=[
            delete_effect(
                "hate2_delete_own",
                exclude_self=False,
                target_filter=target_filter(owner="own", calculation="highest_value"),
            ),
            delete_effect(
                "hate2_delete_opponent",
                target_filter=target_filter(owner="opponent", calculation="highest_value"),
            ),
        ],
    ),
    define_card(
        "Hate", 3,
        top="After you delete cards: Draw 1 card.",
        top_effects=[as_trigger(draw_effect("hate3_draw"), EffectTrigger.AFTER_DELETE, EffectPosition.TOP)],
    ),
    define_card(
        "Hate", 4,
        bottom="When this card would be covered: First, delete the lowest value covered card in this line.",
        bottom_effects=[as_trigger(
            delete_effect(
                "hate4_delete",
                scope="this_lane",
                target_filter=target_filter(position="covered", calculation="lowest_value"),
                auto_execute=True,
            ),
            EffectTrigger.ON_COVER,
            EffectPosition.BOTTOM,
        )],
    ),
    _discard_one("Hate"),
]


# ============================================================================
# Spirit
# ============================================================================

SPIRIT = [
    define_card(
        "Spirit", 0,
        top="Skip your check cache phase.",
        middle="Refresh. Draw 1 card.",
        top_effects=[passive_rule("spirit0_skip", "skip_check_cache_phase", target="self", scope="global")],
        middle_effects=[refresh_effect("spirit0_refresh"), draw_effect("spirit0_draw")],
    ),
    define_card(
        "Spirit", 1,
        top="You can play cards in any line.",
        middle="Draw 2 cards.",
        bottom="Start: Either discard 1 card or flip this card.",
        top_effects=[passive_rule("spirit1_any_line", "allow_any_protocol_play", target="self", scope="global")],
        middle_effects=[draw_effect("spirit1_draw", 2)],
        bottom_effects=[as_trigger(
            choice_effect(
                "spirit1_choice",
                discard_effect("spirit1_discard"),
                flip_effect("spirit1_flip_self", flip_self=True),
            ),
            EffectTrigger.START,
            EffectPosition.BOTTOM,
        )],
    ),
    define_card(
        "Spirit", 2,
        middle="You may flip 1 card.",
        middle_effects=[flip_effect("spirit2_flip", optional=True)],
    ),
    define_card(
        "Spirit", 3,
        top="After you draw cards: You may shift this card.",
        top_effects=[as_trigger(
            shift_effect("spirit3_shift", shift_self=True, optional=True),
            EffectTrigger.AFTER_DRAW,
            EffectPosition.TOP,
        )],
    ),
    define_card(
        "Spirit", 4,
        middle="Swap the positions of 2 of your protocols.",
        middle_effects=[swap_effect("spirit4_swap")],
    ),
    _discard_one("Spirit"),
]


# ============================================================================
# Metal
# ============================================================================

METAL = [
    define_card(
        "Metal", 0,
        top="Your opponent's total value in this line is reduced by 2.",
        middle="Flip 1 card.",
        top_effects=[value_modifier("metal0_reduce", "add_to_total", -2, target="opponent_total")],
        middle_effects=[flip_effect("metal0_flip")],
    ),
    define_card(
        "Metal", 1,
        middle="Draw 2 cards. Your opponent cannot compile next turn.",
        middle_effects=[draw_effect("metal1_draw", 2), block_compile_effect("metal1_block")],
    ),
    define_card(
        "Metal", 2,
        top="Your opponent cannot play cards face-down in this line.",
        top_effects=[passive_rule("metal2_block", "block_face_down_play", target="opponent")],
    ),
    define_card(
        "Metal", 3,
        middle="Draw 1 card. Delete all cards in 1 other line with 8 or more cards.",
        middle_effects=[
            draw_effect("metal3_draw"),
            delete_effect(
                "metal3_delete",
                count="all",
                select_lane=True,
                scope={"type": "other_lanes", "min_cards_in_lane": 8},
                target_filter=target_filter(position="any"),
            ),
        ],
    ),
    define_card(
        "Metal", 4,
        middle="Your opponent discards 1 card.",
        middle_effects=[discard_effect("metal4_discard", actor="opponent")],
    ),
    _discard_one("Metal"),
]


# ============================================================================
# Speed
# ============================================================================

SPEED = [
    define_card(
        "Speed", 0,
        middle="Play 1 card.",
        middle_effects=[play_effect("speed0_play", source="hand", face_down=None)],
    ),
    define_card(
        "Speed", 1,
        top="After you refresh: Draw 1 card.",
        middle="Draw 2 cards.",
        top_effects=[as_trigger(draw_effect("speed1_bonus"), EffectTrigger.AFTER_REFRESH, EffectPosition.TOP)],
        middle_effects=[draw_effect("speed1_draw", 2)],
    ),
    define_card(
        "Speed", 2,
        middle="Shift 1 of your cards.",
        middle_effects=[shift_effect("speed2_shift", owner="own")],
    ),
    define_card(
        "Speed", 3,
        middle="Shift 1 of your other cards.",
        bottom="End: You may shift 1 of your cards. If you do, flip this card.",
        middle_effects=[shift_effect("speed3_shift", owner="own", exclude_self=True)],
        bottom_effects=[as_trigger(
            if_executed(
                shift_effect("speed3_end_shift", owner="own", optional=True),
                flip_effect("speed3_flip_self", flip_self=True),
            ),
            EffectTrigger.END,
            EffectPosition.BOTTOM,
        )],
    ),
    define_card(
        "Speed", 4,
        middle="Shift 1 of your opponent's face-down cards.",
        middle_effects=[shift_effect("speed4_shift", owner="opponent", face_state="face_down")],
    ),
    _discard_one("Speed"),
]


ALL_PROTOCOL_CARDS: dict[str, list[Card]] = {
    "Fire": FIRE,
    "Darkness": DARKNESS,
    "Water": WATER,
    "Death": DEATH,
    "Hate": HATE,
    "Spirit": SPIRIT,
    "Metal": METAL,
    "Speed": SPEED,
}
