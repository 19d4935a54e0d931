import pytest

from funnel_audit.classifier import classify
from funnel_audit.models import FindingCategory
from funnel_audit.rules import (
    ADD_TO_CART_FAILED,
    ADD_TO_CART_LOGIN_REQUIRED,
    ADD_TO_CART_OUT_OF_STOCK,
    ADD_TO_CART_VARIANT_UNRESOLVED,
    CART_PAGE,
    CART_RULES,
    CHECKOUT_RULES,
    CHECKOUT_SURFACE,
    HOMEPAGE_RULES,
    LANDING_PAGE,
    PRODUCT_PAGE_RULES,
    VARIANT_ERROR,
    VARIANT_STILL_REQUIRED,
    cart_has_items,
    diagnose_add_to_cart,
)


def _ids(observation, rules):
    return {f.id for f in classify(observation, rules)}


@pytest.mark.smoke
@pytest.mark.parametrize(
    "observation,expected",
    [
        ("cart icon shows 0 items, no success message", False),
        ("cart icon shows 1 item, sepete eklendi", True),
        ("Your cart is empty", False),
        ("Sepetiniz boş", False),
        ("Cart badge: 1", True),
        ("Nothing changed on the page", False),
        ({"cart_count": 1, "message": "Added to cart"}, True),
        ("Subtotal 10.00, nothing else", False),
    ],
)
def test_cart_has_items_requires_positive_evidence(observation, expected):
    assert cart_has_items(observation) is expected


@pytest.mark.parametrize(
    "observation,rule",
    [
        ("The product is sold out in every size", ADD_TO_CART_OUT_OF_STOCK),
        ("Bu ürün tükendi", ADD_TO_CART_OUT_OF_STOCK),
        ("A sign in modal appeared asking to log in", ADD_TO_CART_LOGIN_REQUIRED),
        ("Sepete eklemek için giriş yapın", ADD_TO_CART_LOGIN_REQUIRED),
        ("Please select a size first", ADD_TO_CART_VARIANT_UNRESOLVED),
        ("Lütfen beden seçiniz", ADD_TO_CART_VARIANT_UNRESOLVED),
        ("The button did nothing", ADD_TO_CART_FAILED),
        (None, ADD_TO_CART_FAILED),
    ],
)
def test_diagnose_add_to_cart_picks_most_specific_cause(observation, rule):
    assert diagnose_add_to_cart(observation) is rule


def test_out_of_stock_wins_over_variant_vocabulary():
    assert diagnose_add_to_cart("Size M is out of stock") is ADD_TO_CART_OUT_OF_STOCK


def test_landing_page_probe():
    assert LANDING_PAGE.matches("This is a brand landing page, you must navigate to the shop first")
    assert LANDING_PAGE.matches("Ana sayfada ürün görünmüyor, kategoriye gitmek gerekiyor")
    assert not LANDING_PAGE.matches("Products with prices are visible on the homepage")


def test_negated_visibility_is_a_landing_page_not_a_positive():
    answer = "No purchasable products with prices are visible on this page; I must navigate to the shop section first."
    assert LANDING_PAGE.matches(answer)
    ids = _ids(answer, HOMEPAGE_RULES)
    assert "homepage-products-hidden" in ids
    assert "homepage-prices-visible" not in ids
    assert "homepage-prices-visible" in _ids("The homepage shows products with prices are visible.", HOMEPAGE_RULES)
    assert "homepage-prices-visible" not in _ids("Prices are visible, but products are not visible.", HOMEPAGE_RULES)


def test_uppercase_turkish_text_still_matches():
    assert diagnose_add_to_cart("Sayfada 'ÜYE GİRİŞİ YAPMANIZ GEREKİYOR' mesajı var") is ADD_TO_CART_LOGIN_REQUIRED
    assert "checkout-guest-available" in _ids("MİSAFİR OLARAK DEVAM ET seçeneği var", CHECKOUT_RULES)
    assert LANDING_PAGE.matches("ANA SAYFADA ÜRÜN GÖRÜNMÜYOR")


def test_uppercase_turkish_evidence_quotes_the_original_text():
    findings = classify("MİSAFİR OLARAK DEVAM ET seçeneği var", CHECKOUT_RULES)
    finding = next(f for f in findings if f.id == "checkout-guest-available")
    assert "MİSAFİR" in finding.evidence


def test_variant_probes_ignore_negated_errors():
    assert VARIANT_ERROR.matches("Please select a size")
    assert VARIANT_ERROR.matches("Lütfen renk seçiniz")
    assert not VARIANT_ERROR.matches("no error")
    assert not VARIANT_ERROR.matches("Hata yok")
    # "required" alone keeps the first strategy escalating, but not the second
    assert VARIANT_ERROR.matches("This field is required")
    assert not VARIANT_STILL_REQUIRED.matches("This field is required")


def test_cart_page_vs_checkout_page():
    assert CART_PAGE.matches("This is the shopping cart page with a checkout button")
    assert CART_PAGE.matches("Sepetim sayfasındayız")
    assert CART_PAGE.matches("This is a cart page, not a checkout page")
    assert not CART_PAGE.matches("This is the checkout page with a shipping address form")
    assert not CART_PAGE.matches("Ödeme sayfası, teslimat adresi isteniyor")


def test_checkout_surface_is_bilingual():
    assert CHECKOUT_SURFACE.matches("Payment details")
    assert CHECKOUT_SURFACE.matches("Teslimat bilgileri")
    assert not CHECKOUT_SURFACE.matches("A blog article about summer trends")


def test_product_page_rules_english_and_turkish():
    assert "pdp-price-unclear" in _ids("Price: not visible", PRODUCT_PAGE_RULES)
    assert "pdp-price-unclear" in _ids("Fiyat bilgisi yok", PRODUCT_PAGE_RULES)
    assert "pdp-no-reviews" in _ids("There are no reviews", PRODUCT_PAGE_RULES)
    assert "pdp-no-reviews" in _ids("Müşteri yorum bulunmuyor", PRODUCT_PAGE_RULES)
    assert "pdp-reviews-present" in _ids("4.5 stars from 87 reviews", PRODUCT_PAGE_RULES)
    assert "pdp-reviews-present" not in _ids("no reviews, 0 stars", PRODUCT_PAGE_RULES)
    assert "pdp-low-quality-images" in _ids("Images are small and blurry", PRODUCT_PAGE_RULES)
    assert "pdp-no-size-guide" in _ids("There is no size guide", PRODUCT_PAGE_RULES)


def test_product_page_sentence_boundary_stops_negation():
    ids = _ids("Shipping: free over $50. Not much else to say about trust", PRODUCT_PAGE_RULES)
    assert "pdp-no-shipping-info" not in ids


def test_cart_rules():
    assert "cart-free-shipping-threshold" in _ids("Free shipping on orders over $50", CART_RULES)
    assert "cart-no-free-shipping-message" in _ids("No free shipping message", CART_RULES)
    assert "cart-free-shipping-threshold" not in _ids("No free shipping message", CART_RULES)
    assert "cart-upsell-present" in _ids("Frequently bought together row", CART_RULES)
    assert "cart-no-upsell" in _ids("No recommendations shown", CART_RULES)
    assert "cart-checkout-path-unclear" in _ids("The checkout button is hidden", CART_RULES)


def test_checkout_rules():
    guestless = classify("Guest checkout: not available, account required.", CHECKOUT_RULES)
    assert {f.id for f in guestless} >= {"checkout-no-guest"}
    assert "checkout-guest-available" not in {f.id for f in guestless}
    assert next(f for f in guestless if f.id == "checkout-no-guest").category == FindingCategory.CRITICAL

    assert "checkout-guest-available" in _ids("Continue as guest is offered", CHECKOUT_RULES)
    assert "checkout-no-guest" in _ids("Üyelik zorunlu", CHECKOUT_RULES)
    assert "checkout-too-many-fields" in _ids("The form has 22 required fields", CHECKOUT_RULES)
    assert "checkout-too-many-fields" not in _ids("8 required fields", CHECKOUT_RULES)
    assert "checkout-shipping-cost-hidden" in _ids("Shipping: calculated at next step", CHECKOUT_RULES)
    assert "checkout-validation-errors" in _ids("An error message said the phone is invalid", CHECKOUT_RULES)
    assert "checkout-validation-errors" not in _ids("No validation errors, nothing invalid", CHECKOUT_RULES)
    assert "checkout-no-trust-badges" in _ids("No trust badges near the button", CHECKOUT_RULES)
    assert "checkout-trust-badges-present" in _ids("SSL secure checkout badges shown", CHECKOUT_RULES)


def test_happy_observations_raise_no_negative_findings():
    from conftest import happy_observations
    from funnel_audit import prompts

    obs = happy_observations()
    pairs = [
        (prompts.LANDING_CHECK, HOMEPAGE_RULES),
        (prompts.PRODUCT_PAGE_UX, PRODUCT_PAGE_RULES),
        (prompts.CART_EXPERIENCE, CART_RULES),
        (prompts.CHECKOUT_UX, CHECKOUT_RULES),
    ]
    for prompt, rules in pairs:
        negatives = [f.id for f in classify(obs[prompt], rules) if f.category != FindingCategory.POSITIVE]
        assert negatives == [], prompt


def test_rule_ids_are_unique():
    tables = HOMEPAGE_RULES + PRODUCT_PAGE_RULES + CART_RULES + CHECKOUT_RULES
    ids = [r.id for r in tables]
    assert len(ids) == len(set(ids))
