from datetime import date, datetime, timezone

import pytest

from lunchmenu.ingestion.errors import UpstreamShapeMismatch
from lunchmenu.ingestion.html_menu import (
    adapt_html,
    clean_description,
    extract_day_menus,
    resolve_year,
)

TODAY = date(2025, 9, 15)

SINGLE_DAY_PAGE = """
<html><body>
<div class="lunch-menu-days">
  <div class="lunch-menu-language" data-language="fi">
    <ul>
      <li class="menu-item-category"><strong>Keitto</strong> <span class="price">2,95 €</span></li>
      <li>Hernekeitto (L, G)</li>
      <li>Pannukakku ja hillo</li>
      <li class="menu-item-category"><strong>Lounas</strong> <span class="price">12,90€ / opisk. 2,95 €</span></li>
      <li>Jauhelihakastiketta * ja perunaa (M)</li>
      <li class="menu-item-category"><strong> </strong></li>
      <li>Nimetön</li>
    </ul>
  </div>
  <div class="lunch-menu-language" data-language="en">
    <ul>
      <li class="menu-item-category"><strong>Soup</strong></li>
      <li>Pea soup</li>
    </ul>
  </div>
</div>
</body></html>
"""

MULTI_DAY_PAGE = """
<div class="lunch-menu-days">
  <div class="lunch-menu-language" data-language="fi">
    <h3>Maanantai 15.9.</h3>
    <ul>
      <li class="menu-item-category"><strong>Keitto</strong><span class="price">2,95€</span></li>
      <li>Lohikeitto (L, G)</li>
      <li class="menu-item-category"><strong>Lounas</strong><span class="price">Op 2,95 € / Hk 6,12€</span></li>
      <li>Broileria kermakastikkeessa (L)</li>
      <li>Riisiä *</li>
      <li class="menu-item-category"><strong>Kasvislounas</strong><span class="price">2,95 €</span></li>
      <li>Kasvispata (VEG)</li>
    </ul>
    <h3>Tiistai 16.9.</h3>
    <ul>
      <li class="menu-item-category"><strong>Lounas</strong><span class="price">2,95 €</span></li>
      <li>Uunilohi</li>
      <li class="menu-item-category"><strong>Keitto</strong></li>
      <li>Kasviskeitto</li>
      <li class="menu-item-category"><strong>Jälkiruoka</strong></li>
      <li>Mustikkapiirakka</li>
    </ul>
  </div>
</div>
"""


def _category_page(count: int) -> str:
    items = "".join(
        f'<li class="menu-item-category"><strong>Ruoka {n}</strong></li><li>Kuvaus {n}</li>'
        for n in range(1, count + 1)
    )
    return (
        '<div class="lunch-menu-days"><div class="lunch-menu-language" data-language="fi">'
        f"<ul>{items}</ul></div></div>"
    )


def test_single_day_takes_first_description_only():
    days = extract_day_menus(SINGLE_DAY_PAGE, "fi", today=TODAY)

    assert len(days) == 1
    assert days[0].date == TODAY
    soup, lunch = days[0].items
    assert soup.name == "Keitto"
    assert soup.price == "2,95 €"
    assert soup.components == ["Hernekeitto"]
    assert lunch.components == ["Jauhelihakastiketta ja perunaa"]


def test_single_day_uses_requested_language():
    days = extract_day_menus(SINGLE_DAY_PAGE, "en", today=TODAY)
    assert [i.name for i in days[0].items] == ["Soup"]
    assert days[0].items[0].price == ""


def test_multi_day_concatenates_descriptions():
    days = extract_day_menus(MULTI_DAY_PAGE, "fi", today=TODAY)

    assert [d.date for d in days] == [date(2025, 9, 15), date(2025, 9, 16)]
    assert [len(d.items) for d in days] == [3, 3]
    lunch = days[0].items[1]
    assert lunch.name == "Lounas"
    assert lunch.components == ["Broileria kermakastikkeessa Riisiä"]


def test_adapt_html_orders_and_prices_entries():
    fetched_at = datetime(2025, 9, 15, 7, 0, tzinfo=timezone.utc)
    snapshots = adapt_html(MULTI_DAY_PAGE, "antell_round", "fi", fetched_at=fetched_at, today=TODAY)

    assert len(snapshots) == 2
    monday = snapshots[0]
    assert [e.dish_name for e in monday.entries] == ["Lounas", "Kasvislounas", "Keitto"]
    assert [e.student_price for e in monday.entries] == ["2,95", "2,95", "2,95"]
    assert [e.sort_order for e in monday.entries] == [1, 2, 3]
    assert all(e.restaurant == "antell_round" for e in monday.entries)
    assert [len(s.entries) for s in snapshots] == [3, 3]


def test_missing_language_section_is_an_error():
    with pytest.raises(UpstreamShapeMismatch):
        extract_day_menus(SINGLE_DAY_PAGE, "sv", today=TODAY)
    with pytest.raises(UpstreamShapeMismatch):
        extract_day_menus("<html><body><p>Tervetuloa</p></body></html>", "fi", today=TODAY)


def test_empty_section_means_no_menu_today():
    page = '<div class="lunch-menu-days"><div class="lunch-menu-language" data-language="fi"></div></div>'
    days = extract_day_menus(page, "fi", today=TODAY)
    assert len(days) == 1
    assert days[0].date == TODAY
    assert days[0].items == []


def test_category_cap_per_day():
    days = extract_day_menus(_category_page(8), "fi", today=TODAY, max_categories=5)
    assert [i.name for i in days[0].items] == [f"Ruoka {n}" for n in range(1, 6)]


def test_year_rollover():
    assert resolve_year(2, 1, date(2025, 12, 30)) == date(2026, 1, 2)
    assert resolve_year(31, 12, date(2026, 1, 2)) == date(2025, 12, 31)
    assert resolve_year(15, 9, TODAY) == date(2025, 9, 15)
    assert resolve_year(31, 2, TODAY) is None


def test_multi_day_across_new_year():
    page = (
        '<div class="lunch-menu-language" data-language="fi">'
        "<h3>Keskiviikko 31.12.</h3><ul>"
        '<li class="menu-item-category"><strong>Lounas</strong></li><li>Kinkkukiusaus</li></ul>'
        "<h3>Perjantai 2.1.</h3><ul>"
        '<li class="menu-item-category"><strong>Lounas</strong></li><li>Karjalanpaisti</li></ul>'
        "</div>"
    )
    days = extract_day_menus(page, "fi", today=date(2025, 12, 29))
    assert [d.date for d in days] == [date(2025, 12, 31), date(2026, 1, 2)]


def test_clean_description():
    assert clean_description("  Lohikeitto (L, G)  ja  leipää (VEG) * ") == "Lohikeitto ja leipää"
    assert clean_description("• Salaatti") == "Salaatti"
