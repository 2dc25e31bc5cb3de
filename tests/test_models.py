import pytest

from core.extraction.models import Product, parse_rating


def make_product(**overrides):
    fields = {
        "name": "Apple iPhone 15 128GB",
        "price": "Rp12.999.000",
        "product_url": "https://www.tokopedia.com/shop/iphone-15",
    }
    fields.update(overrides)
    return Product(**fields)


@pytest.mark.parametrize("field", ["name", "price"])
def test_product_requires_essential_fields(field):
    with pytest.raises(ValueError):
        make_product(**{field: ""})


def test_product_rejects_rating_above_five():
    with pytest.raises(ValueError):
        make_product(rating="5.1")


def test_to_dict_leaves_out_unset_optional_fields():
    data = make_product().to_dict()
    assert data == {
        "name": "Apple iPhone 15 128GB",
        "price": "Rp12.999.000",
        "product_url": "https://www.tokopedia.com/shop/iphone-15",
        "image_url": "",
    }


def test_from_dict_restores_optional_fields():
    product = make_product(rating="4.9", shop_location="Jakarta Selatan", sold="100+ terjual")
    assert Product.from_dict(product.to_dict()) == product


def test_from_dict_requires_name():
    with pytest.raises(KeyError):
        Product.from_dict({"price": "Rp1", "product_url": "https://www.blibli.com/p/1"})


@pytest.mark.parametrize(
    "text, expected",
    [("4.9", 4.9), (" 5.0 ", 5.0), ("0", 0.0), ("5.1", None), ("-1", None), ("nan", None), ("abc", None), (None, None)],
)
def test_parse_rating(text, expected):
    assert parse_rating(text) == expected
