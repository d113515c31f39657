"""Character scraper for legends.dbz.space.

Each character page lays most of its sections out as an anchor tag
(``<a id="charaunique">``, ``<a id="charastrike">``, ...) followed by the
block holding that section's content, so most rules below are Sibling
rules keyed on those anchors.
"""

from __future__ import annotations

from typing import ClassVar

from dblscraper.common.extraction import (
    Attr,
    Each,
    Exists,
    Nested,
    OptionalRecord,
    Schema,
    Sibling,
    Slots,
    Text,
    as_int,
)
from dblscraper.data_types import BaseScraper, DocumentRef
from dblscraper.scrapers.models import (
    Ability,
    Character,
    Stats,
    UniqueAbilities,
    ZAbility,
)

ABILITY_NAME = "span.ability.medium"
ABILITY_EFFECT = "div.ability_text.small"

ABILITY = Schema.of(
    Ability,
    name=Text(ABILITY_NAME),
    effect=Text(ABILITY_EFFECT),
)


def _stats(selector: str) -> Nested:
    """Stat block of one level break; values are read in column order."""
    value = "div.col div.val"
    return Nested(
        Schema.of(
            Stats,
            power=Attr(value, "raw", as_int, index=0),
            health=Attr(value, "raw", as_int, index=1),
            strike_atk=Attr(value, "raw", as_int, index=2),
            strike_def=Attr(value, "raw", as_int, index=3),
            blast_atk=Attr(value, "raw", as_int, index=4),
            blast_def=Attr(value, "raw", as_int, index=5),
        ),
        selector=selector,
    )


def _arts(anchor: str, rule: Text | Nested | OptionalRecord) -> Sibling:
    """A rule evaluated in the arts block following ``a#<anchor>``."""
    return Sibling(f"a#{anchor}", rule, sibling="div.ability_text.arts")


def _arts_ability(selector: str = "div.frm.form0") -> Nested:
    return Nested(ABILITY, selector=selector)


Z_ABILITY_TAG = "div.zability.z{i} div.ability_text.medium"

CHARACTER_SCHEMA = Schema.of(
    Character,
    name=Text("div.head.name.large.img_back h1"),
    id=Text("div.head.name.id-right.small.img_back"),
    color=Text("div.element"),
    rarity=Text("div.rarity"),
    tags=Each("span.ability.medium a", Text()),
    main_ability=Nested(ABILITY, selector="div.frm.form0"),
    unique_ability=Sibling(
        "a#charaunique",
        Nested(
            Schema.of(
                UniqueAbilities,
                start_abilities=Each("div.frm.form0", ABILITY),
                zenkai_abilities=Each("div.frm.form1", ABILITY),
            )
        ),
        sibling="div.ability_text",
    ),
    ultra_ability=Sibling(
        "a#charaultra",
        OptionalRecord(ABILITY, selector="div.frm.form0"),
        sibling="div.ability_text",
    ),
    base_stats=_stats("div.row.lvlbreak.lvb1"),
    max_stats=_stats("div.row.lvlbreak.lvb5000"),
    strike_info=_arts("charastrike", Text(f"div.frm.form0 {ABILITY_EFFECT}")),
    shot_info=_arts("charashot", Text(f"div.frm.form0 {ABILITY_EFFECT}")),
    image_url=Attr("img.cutin.trs0.form0", "src"),
    special_move=_arts("charaspecial_move", _arts_ability()),
    special_skill=_arts("charaspecial_skill", _arts_ability()),
    ultimate_skill=_arts(
        "charaultimate_skill",
        OptionalRecord(ABILITY, selector="div.frm.form0"),
    ),
    z_abilities=Slots(
        4,
        Schema.of(
            ZAbility,
            tags=Each(Z_ABILITY_TAG, Text()),
            # The effect text follows the last tag of the tier
            effect=Sibling(Z_ABILITY_TAG, Text(), anchor_index=-1),
        ),
    ),
    is_lf=Exists("img.legends-limited"),
)


class CharacterScraper(BaseScraper[Character]):
    """Scraper for the character pages of legends.dbz.space."""

    base_url: ClassVar[str] = "https://legends.dbz.space"
    index_path: ClassVar[DocumentRef] = "/characters/"
    link_selector: ClassVar[str] = "div.chara.list a"
    schema: ClassVar[Schema[Character]] = CHARACTER_SCHEMA
    output_filename: ClassVar[str] = ".CHARACTER-STATS.json"
