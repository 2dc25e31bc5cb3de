import pytest

from core.exceptions import ScraperError
from core.scrapers.scraper_factory import ScraperFactory
from core.scrapers.websites.blibli_scraper import BlibliScraper
from core.scrapers.websites.tokopedia_scraper import TokopediaScraper
from tests.fakes import BrowserFactory, FakePage, tokopedia_search_page


def test_search_urls_are_percent_encoded():
    assert TokopediaScraper().build_search_url("iphone 15") == "https://www.tokopedia.com/search?st=product&q=iphone%2015"
    assert BlibliScraper().build_search_url(" iphone 15/pro ") == "https://www.blibli.com/cari/iphone%2015%2Fpro"


def test_scrape_renders_the_page_and_extracts(tokopedia_profile):
    page = FakePage(html=tokopedia_search_page(6), counts=[0, 2, 6, 6, 6])
    browsers = BrowserFactory(page)
    scraper = TokopediaScraper(profile=tokopedia_profile, browser_factory=browsers)

    products = scraper.scrape("iphone", limit=4)

    assert len(products) == 4
    assert page.visited == ["https://www.tokopedia.com/search?st=product&q=iphone"]
    assert browsers.launches == 1
    assert browsers.browsers[0].closed


def test_scrape_without_limit_returns_everything(tokopedia_profile):
    page = FakePage(html=tokopedia_search_page(12))
    scraper = TokopediaScraper(profile=tokopedia_profile, browser_factory=BrowserFactory(page))

    assert len(scraper.scrape("iphone")) == 12


def test_empty_page_is_not_an_error(blibli_profile):
    page = FakePage(html="<html><body><p>Produk tidak ditemukan</p></body></html>", counts=[0])
    scraper = BlibliScraper(profile=blibli_profile, browser_factory=BrowserFactory(page))

    assert scraper.scrape("zzzzzz") == []


@pytest.mark.parametrize(
    "failure, message",
    [("goto", "Failed to navigate"), ("title", "Page failed to load"), ("content", "Failed to get page content")],
)
def test_infrastructure_failures_raise_scraper_error(tokopedia_profile, failure, message):
    page = FakePage(html=tokopedia_search_page(3), fail_on={failure})
    browsers = BrowserFactory(page)
    scraper = TokopediaScraper(profile=tokopedia_profile, browser_factory=browsers)

    with pytest.raises(ScraperError, match=message):
        scraper.scrape("iphone")
    assert browsers.browsers[0].closed


def test_factory_creates_scrapers_by_name():
    assert isinstance(ScraperFactory.create_scraper("tokopedia"), TokopediaScraper)
    assert isinstance(ScraperFactory.create_scraper(" Blibli "), BlibliScraper)
    assert ScraperFactory.available_sites() == ["blibli", "tokopedia"]


def test_factory_passes_browser_factory_through():
    browsers = BrowserFactory(FakePage())
    assert ScraperFactory.create_scraper("blibli", browser_factory=browsers).browser_factory is browsers


def test_factory_rejects_unknown_sites():
    with pytest.raises(ValueError, match="Unknown site 'shopee'"):
        ScraperFactory.create_scraper("shopee")
