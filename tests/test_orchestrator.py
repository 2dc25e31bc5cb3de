from core.extraction.models import Product
from core.extraction.orchestrator import ExtractionOrchestrator, deduplicate
from tests.fakes import tokopedia_search_page


def product(slug, name="Apple iPhone 15 128GB"):
    return Product(name=name, price="Rp12.999.000", product_url=f"https://www.tokopedia.com/shop/{slug}")


class StubExtractor:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def extract(self, html, limit=None):
        self.calls.append(limit)
        return self.result


def test_structured_result_is_used_when_available(tokopedia_profile):
    structured = StubExtractor([product("a"), product("b")])
    heuristic = StubExtractor([product("c")])
    orchestrator = ExtractionOrchestrator(tokopedia_profile, structured, heuristic)

    products = orchestrator.extract("<html></html>")

    assert [p.product_url[-1] for p in products] == ["a", "b"]
    assert heuristic.calls == []


def test_falls_back_to_dom_when_structured_data_is_missing_or_empty(tokopedia_profile):
    for structured_result in (None, []):
        heuristic = StubExtractor([product("c")])
        orchestrator = ExtractionOrchestrator(tokopedia_profile, StubExtractor(structured_result), heuristic)

        assert [p.product_url[-1] for p in orchestrator.extract("<html></html>", limit=5)] == ["c"]
        assert heuristic.calls == [5]


def test_non_positive_limit_returns_nothing(tokopedia_profile):
    structured = StubExtractor([product("a")])
    orchestrator = ExtractionOrchestrator(tokopedia_profile, structured, StubExtractor([]))

    assert orchestrator.extract("<html></html>", limit=0) == []
    assert structured.calls == []


def test_result_is_deduplicated_and_limited(tokopedia_profile):
    structured = StubExtractor([product("a"), product("a", name="Second copy"), product("b"), product("c")])
    orchestrator = ExtractionOrchestrator(tokopedia_profile, structured, StubExtractor([]))

    products = orchestrator.extract("<html></html>", limit=2)

    assert [p.product_url[-1] for p in products] == ["a", "b"]
    assert products[0].name == "Apple iPhone 15 128GB"


def test_deduplicate_without_limit():
    assert len(deduplicate([product("a"), product("b"), product("a")])) == 2


def test_deduplicate_keeps_every_product_without_url():
    unlinked = [Product(name=f"iPhone 15 128GB #{i}", price="Rp15.000.000", product_url="") for i in range(3)]

    assert deduplicate(unlinked + [product("a"), product("a")]) == unlinked + [product("a")]


def test_real_extractors_on_embedded_data(tokopedia_profile):
    products = ExtractionOrchestrator(tokopedia_profile).extract(tokopedia_search_page(4), limit=3)
    assert len(products) == 3
    assert products[0].price == "Rp12.999.000"
