import pytest
from fastapi.testclient import TestClient

from api.main import app, get_search_service
from core.search.service import SearchService
from tests.fakes import BrowserFactory, FakePage, tokopedia_search_page


@pytest.fixture
def page():
    return FakePage(html=tokopedia_search_page(4))


@pytest.fixture
def client(result_cache, page):
    service = SearchService(cache=result_cache, browser_factory=BrowserFactory(page))
    app.dependency_overrides[get_search_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root_lists_endpoints(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "GET /api/scraper/{site}?query=&limit=" in response.json()["endpoints"]


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "ok"
    assert body["uptime_seconds"] >= 0


def test_sites(client):
    sites = {site["name"]: site for site in client.get("/api/sites").json()}

    assert set(sites) == {"tokopedia", "blibli"}
    assert sites["tokopedia"]["structured_data"] is True
    assert sites["blibli"]["structured_data"] is False
    assert sites["blibli"]["search_url"].startswith("https://www.blibli.com/cari/")


def test_scrape_success_envelope(client):
    response = client.get("/api/scraper/tokopedia", params={"query": "iphone", "limit": 2})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["count"] == 2
    assert "error" not in body
    first = body["data"][0]
    assert first["price"] == "Rp12.999.000"
    assert first["product_url"] == "https://www.tokopedia.com/shop-0/iphone-15-128gb"
    assert first["rating"] == "4.9"


def test_optional_product_fields_are_omitted(client, page):
    page.html = tokopedia_search_page(0).replace(
        '"products": []',
        '"products": [{"name": "Kabel Data USB-C", "price": 25000, "url": "https://www.tokopedia.com/a/kabel"}]',
    )

    body = client.get("/api/scraper/tokopedia", params={"query": "kabel", "limit": 1}).json()

    assert body["data"] == [{
        "name": "Kabel Data USB-C",
        "price": "Rp25.000",
        "product_url": "https://www.tokopedia.com/a/kabel",
        "image_url": "",
    }]


def test_unknown_site_is_404(client):
    response = client.get("/api/scraper/shopee", params={"query": "iphone"})

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert "shopee" in body["error"]
    assert "data" not in body


def test_infrastructure_failure_is_500(client, page):
    page.fail_on.add("goto")

    response = client.get("/api/scraper/blibli", params={"query": "iphone", "limit": 5})

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["error"].startswith("Failed to navigate")


def test_zero_limit_returns_empty_result(client, page):
    response = client.get("/api/scraper/tokopedia", params={"query": "iphone", "limit": 0})

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": [], "count": 0}
    assert page.visited == []


@pytest.mark.parametrize("limit", ["abc", "-1", "5000"])
def test_invalid_limit_keeps_the_envelope(client, limit):
    response = client.get("/api/scraper/tokopedia", params={"query": "iphone", "limit": limit})

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["count"] == 0
    assert body["error"].startswith("Invalid request: limit:")
