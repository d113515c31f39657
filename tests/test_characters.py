"""Tests for the character schema and CharacterScraper."""

import pytest

from dblscraper.common.extraction import extract
from dblscraper.common.lxml_page_element import parse_html
from dblscraper.scrapers.characters import CHARACTER_SCHEMA, CharacterScraper
from dblscraper.scrapers.models import Ability, Character, Stats, ZAbility
from tests.mock_server import generate_character_index_html


class TestCharacterRecord:
    """Extraction of a full character page."""

    def test_identity_fields(self, goku_html):
        record = extract(parse_html(goku_html), CHARACTER_SCHEMA)

        assert record.name == "Super Saiyan Goku"
        assert record.id == "DBL01-01S"
        assert record.color == "RED"
        assert record.rarity == "SPARKING"
        assert record.tags == ("Saiyan", "Son Family", "Super Saiyan")
        assert record.image_url == "/img/cutin.png"

    def test_single_unique_ability_without_ultra(self, goku_html):
        """A page with one unique ability, no zenkai, no ultra and an LF badge."""
        record = extract(parse_html(goku_html), CHARACTER_SCHEMA)

        assert record.main_ability == Ability(
            name="Saiyan Spirit", effect="Raises Base Strike Attack by 20%."
        )
        assert record.unique_ability.start_abilities == (
            Ability(
                name="Unyielding Will",
                effect="Reduces damage received by 15%.",
            ),
        )
        assert record.unique_ability.zenkai_abilities == ()
        assert record.ultra_ability is None
        assert record.ultimate_skill is None
        assert record.is_lf is True

    def test_stats_are_read_in_column_order(self, goku_html):
        record = extract(parse_html(goku_html), CHARACTER_SCHEMA)

        assert record.base_stats == Stats(
            power=1000,
            health=20000,
            strike_atk=1500,
            strike_def=900,
            blast_atk=1400,
            blast_def=850,
        )
        assert record.max_stats.power == 900000
        assert record.max_stats.blast_def == 8800

    def test_arts_blocks(self, goku_html):
        record = extract(parse_html(goku_html), CHARACTER_SCHEMA)

        assert record.strike_info == "Deals Impact Damage"
        assert record.shot_info == "Deals Ki Blast Damage"
        assert record.special_move == Ability(
            name="Kamehameha", effect="Causes Impact Damage"
        )
        assert record.special_skill == Ability(
            name="Focus", effect="Raises Strike Attack"
        )

    def test_z_abilities(self, goku_html):
        record = extract(parse_html(goku_html), CHARACTER_SCHEMA)

        assert len(record.z_abilities) == 4
        assert record.z_abilities[0] == ZAbility(
            tags=("Saiyan",), effect="Z1: Raises ATK by 10%"
        )
        assert record.z_abilities[3].tags == (
            "Saiyan",
            "Son Family",
            "Super Saiyan",
        )
        assert record.z_abilities[3].effect == "Z4: Raises ATK by 40%"

    def test_optional_sections_present(self, piccolo_html):
        record = extract(parse_html(piccolo_html), CHARACTER_SCHEMA)

        assert record.ultra_ability == Ability(
            name="Namekian Fusion", effect="Raises all stats by 30%."
        )
        assert record.ultimate_skill == Ability(
            name="Light Grenade", effect="Causes Ki Blast Damage."
        )
        assert [a.name for a in record.unique_ability.start_abilities] == [
            "Regenerate",
            "Steady",
        ]
        assert record.unique_ability.zenkai_abilities == (
            Ability(name="Zenkai Boost", effect="Raises damage by 10%."),
        )
        assert record.is_lf is False

    def test_missing_z_tiers_are_empty_slots(self, piccolo_html):
        """Slots without a tier on the page shall still be present, empty."""
        record = extract(parse_html(piccolo_html), CHARACTER_SCHEMA)

        assert len(record.z_abilities) == 4
        assert record.z_abilities[1].tags == ("Namekian",)
        assert record.z_abilities[2] == ZAbility()
        assert record.z_abilities[3] == ZAbility()

    def test_empty_page_gives_empty_record(self):
        """Missing elements shall produce empty values, never an error."""
        record = extract(
            parse_html("<html><body><p>gone</p></body></html>"),
            CHARACTER_SCHEMA,
        )

        assert record.name == ""
        assert record.tags == ()
        assert record.main_ability == Ability()
        assert record.ultra_ability is None
        assert record.base_stats == Stats()
        assert record.z_abilities == (ZAbility(),) * 4
        assert record.is_lf is False

    def test_record_is_frozen(self, goku_html):
        record = extract(parse_html(goku_html), CHARACTER_SCHEMA)

        with pytest.raises(Exception):
            record.name = "Vegeta"  # type: ignore[misc]

    def test_serialized_field_names(self, goku_html):
        record = extract(parse_html(goku_html), CHARACTER_SCHEMA)
        data = record.model_dump(by_alias=True)

        assert list(data) == [
            "Name",
            "ID",
            "Color",
            "Rarity",
            "Tags",
            "MainAbility",
            "UniqueAbility",
            "UltraAbility",
            "BaseStats",
            "MaxStats",
            "StrikeInfo",
            "ShotInfo",
            "ImageURL",
            "SpecialMove",
            "SpecialSkill",
            "UltimateSkill",
            "ZAbilities",
            "IsLF",
        ]
        assert data["UltraAbility"] is None
        assert data["BaseStats"]["StrikeAtk"] == 1500
        assert data["UniqueAbility"]["ZenkaiAbilities"] == ()

    def test_z_abilities_length_is_enforced(self, goku_html):
        record = extract(parse_html(goku_html), CHARACTER_SCHEMA)
        data = record.model_dump()
        data["z_abilities"] = data["z_abilities"][:3]

        with pytest.raises(ValueError):
            Character.model_validate(data)


class TestCharacterScraper:
    """Tests for CharacterScraper configuration and index parsing."""

    def test_defaults(self):
        scraper = CharacterScraper()

        assert scraper.origin == "https://legends.dbz.space"
        assert scraper.index_path == "/characters/"
        assert scraper.output_filename == ".CHARACTER-STATS.json"
        assert scraper.timeout == 5.0
        assert [(r.limit, r.interval) for r in scraper.rate_limits] == [
            (1, 1000)
        ]

    def test_base_url_override(self):
        assert CharacterScraper("http://mirror.test").origin == (
            "http://mirror.test"
        )

    def test_index_links_only_from_list_container(self):
        """Only the three links in div.chara.list shall become refs."""
        markup = generate_character_index_html(
            ["/characters/a", "/characters/b", "/characters/a"]
        )

        refs = CharacterScraper().parse_index(parse_html(markup))

        assert refs == ["/characters/a", "/characters/b", "/characters/a"]

    def test_links_without_href_attribute_are_skipped(self):
        """An empty href is a ref to the origin and is kept."""
        markup = (
            '<html><body><div class="chara list">'
            '<a href="/characters/x">x</a><a name="top">top</a><a href="">e</a>'
            "</div></body></html>"
        )

        assert CharacterScraper().parse_index(parse_html(markup)) == [
            "/characters/x",
            "",
        ]
