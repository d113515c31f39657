"""Pydantic record models for the character and banner scrapers.

Attribute names are snake_case; the serialized names are the PascalCase
keys of the published JSON files and are declared as explicit aliases.
Records are frozen and sequences are tuples, so a record never changes
after extraction.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RecordModel(BaseModel):
    """Base class for extracted records and sub-records."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Ability(RecordModel):
    """A named ability and its effect text."""

    name: str = Field("", alias="Name")
    effect: str = Field("", alias="Effect")


class UniqueAbilities(RecordModel):
    """Unique abilities, split into starting and zenkai-awakened ones."""

    start_abilities: tuple[Ability, ...] = Field(
        (), alias="StartAbilities"
    )
    zenkai_abilities: tuple[Ability, ...] = Field(
        (), alias="ZenkaiAbilities"
    )


class Stats(RecordModel):
    """Numeric stat block for one level break."""

    power: int = Field(0, alias="Power")
    health: int = Field(0, alias="Health")
    strike_atk: int = Field(0, alias="StrikeAtk")
    strike_def: int = Field(0, alias="StrikeDef")
    blast_atk: int = Field(0, alias="BlastAtk")
    blast_def: int = Field(0, alias="BlastDef")


class ZAbility(RecordModel):
    """One tier of a Z ability: the tags it applies to and its effect."""

    tags: tuple[str, ...] = Field((), alias="Tags")
    effect: str = Field("", alias="Effect")


class Character(RecordModel):
    """A playable character."""

    name: str = Field(..., alias="Name")
    id: str = Field(..., alias="ID")
    color: str = Field(..., alias="Color")
    rarity: str = Field(..., alias="Rarity")
    tags: tuple[str, ...] = Field(..., alias="Tags")
    main_ability: Ability = Field(..., alias="MainAbility")
    unique_ability: UniqueAbilities = Field(..., alias="UniqueAbility")
    ultra_ability: Ability | None = Field(None, alias="UltraAbility")
    base_stats: Stats = Field(..., alias="BaseStats")
    max_stats: Stats = Field(..., alias="MaxStats")
    strike_info: str = Field(..., alias="StrikeInfo")
    shot_info: str = Field(..., alias="ShotInfo")
    image_url: str = Field(..., alias="ImageURL")
    special_move: Ability = Field(..., alias="SpecialMove")
    special_skill: Ability = Field(..., alias="SpecialSkill")
    ultimate_skill: Ability | None = Field(None, alias="UltimateSkill")
    # Tier order is meaningful: slot i is Z ability tier i+1
    z_abilities: tuple[ZAbility, ZAbility, ZAbility, ZAbility] = Field(
        ..., alias="ZAbilities"
    )
    is_lf: bool = Field(..., alias="IsLF")


class FeaturedCharacter(RecordModel):
    """A character featured on a banner."""

    name: str = Field("", alias="Name")
    image: str = Field("", alias="Image")


class Banner(RecordModel):
    """A summon banner."""

    title: str = Field(..., alias="Title")
    image_url: str = Field(..., alias="ImageURL")
    start_date: str = Field(..., alias="StartDate")
    end_date: str = Field(..., alias="EndDate")
    featured_chars: tuple[FeaturedCharacter, ...] = Field(
        (), alias="FeaturedChars"
    )
