"""Banner scraper for dblegends.net."""

from __future__ import annotations

import logging
from typing import ClassVar

from dblscraper.common.extraction import Attr, Each, Part, Schema, Text
from dblscraper.data_types import BaseScraper, DocumentRef
from dblscraper.scrapers.models import Banner, FeaturedCharacter

logger = logging.getLogger(__name__)

# FULLWIDTH TILDE, shown as "ï½ž" when the UTF-8 page is misread as Latin-1
DEFAULT_DATE_SEPARATOR = "～"

FEATURED_CHARACTER = Schema.of(
    FeaturedCharacter,
    name=Text(".card-header.name"),
    image=Attr("img.carder", "src"),
)


def banner_schema(
    date_separator: str = DEFAULT_DATE_SEPARATOR,
) -> Schema[Banner]:
    """Build the banner schema for a given date separator.

    The period text reads "<start> ～ <end>"; if it does not split into
    two parts both dates are left empty.

    Raises:
        ValueError: If ``date_separator`` is empty.
    """
    if not date_separator:
        raise ValueError("date_separator must not be empty")
    period = Text("h5.text-center")
    return Schema.of(
        Banner,
        title=Text("h2.text-center"),
        image_url=Attr("img.bannerimage", "src"),
        start_date=Part(period, date_separator, 0),
        end_date=Part(period, date_separator, 1),
        featured_chars=Each(
            ".character-container .chara-listing", FEATURED_CHARACTER
        ),
    )


class BannerScraper(BaseScraper[Banner]):
    """Scraper for the banner pages of dblegends.net.

    Banners without a title are not collected.
    """

    base_url: ClassVar[str] = "https://dblegends.net"
    index_path: ClassVar[DocumentRef] = "/"
    link_selector: ClassVar[str] = "a[href^='/banner/']"
    schema: ClassVar[Schema[Banner]] = banner_schema()
    output_filename: ClassVar[str] = ".BANNER_DATA.json"

    def __init__(
        self,
        base_url: str | None = None,
        date_separator: str | None = None,
    ) -> None:
        """Initialize the scraper.

        Args:
            base_url: Optional origin overriding the class default.
            date_separator: Optional delimiter between the start and end
                dates, overriding DEFAULT_DATE_SEPARATOR.
        """
        super().__init__(base_url)
        self._schema = (
            banner_schema(date_separator)
            if date_separator is not None
            else self.schema
        )

    def get_schema(self) -> Schema[Banner]:
        return self._schema

    def accepts(self, record: Banner) -> bool:
        if not record.title:
            logger.debug("Dropping banner without a title")
            return False
        return True
