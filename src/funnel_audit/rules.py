"""
Rule tables and probe lexicons (English + Turkish).

Stage tables (HOMEPAGE_RULES, PRODUCT_PAGE_RULES, CART_RULES, CHECKOUT_RULES) feed
``classify``. Probe lexicons answer a single question about an observation (is this a
landing page, is a variant required, does the cart hold an item...). Stage outcome
templates are rules with an empty lexicon, instantiated by the orchestrator with
evidence from the observation or the captured error.
"""

from __future__ import annotations

import re
from typing import Any, Pattern, Tuple

from funnel_audit.classifier import Lexicon, Rule, normalize
from funnel_audit.models import FindingCategory

CRITICAL = FindingCategory.CRITICAL
WARNING = FindingCategory.WARNING
SUGGESTION = FindingCategory.SUGGESTION
POSITIVE = FindingCategory.POSITIVE

_NEGATORS = r"no|not|without|missing|lacks?|lacking|zero"
_NEGATED_STATES = r"not|missing|absent|unavailable|unclear|hidden|lacking"
_TR_NEGATED_STATES = r"yok|bulunmuyor|görünmüyor|eksik"
# words inside one answer line: "price: not visible", "reviews - missing"
_SEP = r"[\s:,\-]+"


def negated(*subjects: str) -> Tuple[Pattern[str], ...]:
    """Patterns for a subject stated as absent or unclear within a few words.

    "no visible search", "reviews are not shown", "kargo bilgisi yok".
    """
    alt = "|".join(subjects)
    return (
        re.compile(rf"\b(?:{_NEGATORS}){_SEP}(?:\w+{_SEP}){{0,2}}?(?:{alt})"),
        re.compile(rf"(?:{alt})\w*{_SEP}(?:\w+{_SEP}){{0,2}}?(?:{_NEGATED_STATES})\b"),
        re.compile(rf"(?:{alt})\w*{_SEP}(?:\w+{_SEP})?(?:{_TR_NEGATED_STATES})"),
    )


def affirmed(*phrases: str) -> Pattern[str]:
    """A phrase stated plainly: no negator between the clause start and the phrase.

    Matches "products with prices are visible" but not "no purchasable products with
    prices are visible".
    """
    alt = "|".join(phrases)
    return re.compile(rf"(?:^|(?<=[.;:!?,]))\s*(?:(?!(?:{_NEGATORS}|none)\b)\w+\s+){{0,6}}?(?:{alt})")


def _count(digit: str) -> Pattern[str]:
    return re.compile(rf"(?<![\d.,]){digit}(?![\d.,])")


# ---------------------------------------------------------------------------
# Probes
# ---------------------------------------------------------------------------

LANDING_PAGE = Lexicon(
    any_of=(
        re.compile(r"\b(?:must|need to|have to|should)\s+(?:first\s+)?navigate"),
        "landing page",
        "no products",
        "no purchasable",
        "products are not visible",
        "products are not directly visible",
        "not directly visible",
        "shop section first",
        "category first",
        "ürün görünmüyor",
        "ürünler görünmüyor",
        "kategoriye gitmek",
        "mağaza bölümüne",
        "alışveriş bölümüne",
    ),
    none_of=(
        affirmed("products are visible", "products with prices are visible", "products and prices are visible"),
        "no need to navigate",
        "ürünler görünüyor",
        "ürünler fiyatlarıyla",
    ),
)

# Substring lexicon from the add-to-cart flow: size|beden|select|seç|variant|renk|color|required|zorunlu|lütfen
VARIANT_ERROR = Lexicon(
    any_of=("size", "beden", "select", "seç", "variant", "renk", "color", "required", "zorunlu", "lütfen"),
    none_of=("no error", "no variant error", "there is no error", "no message", "hata yok", "uyarı yok"),
)

# Second probe of the ladder: only size/variant vocabulary keeps the ladder going.
VARIANT_STILL_REQUIRED = Lexicon(
    any_of=("size", "beden", "variant", "renk", "color", "seç", "select"),
    none_of=VARIANT_ERROR.none_of,
)

CART_EMPTY = Lexicon(any_of=(_count("0"), "0 item", "empty", "no item", "sepetiniz boş", "sepet boş"))
CART_ADDED = Lexicon(any_of=(_count("1"), "item", "added", "eklendi", "success"))

# "this is a cart page, not a checkout page" is still a cart page
CART_PAGE = Lexicon(
    any_of=(
        re.compile(r"\b(?:shopping\s+)?(?:cart|basket|bag|sepet)\w*\s+(?:page|sayfa)"),
        "sepetim",
    ),
    none_of=(
        re.compile(r"\b(?:this is|we are on|on)\s+(?:the\s+|a\s+)?checkout"),
        "shipping address",
        "contact information",
        "ödeme sayfası",
        "teslimat adresi",
        "iletişim bilgileri",
    ),
)

CHECKOUT_SURFACE = Lexicon(
    any_of=("checkout", "cart", "basket", "bag", "shipping", "payment", "sepet", "ödeme", "kargo", "teslimat"),
)

OUT_OF_STOCK = Lexicon(
    any_of=("out of stock", "sold out", "unavailable", "not available", "tükendi", "stokta yok", "stok yok"),
)
LOGIN_REQUIRED = Lexicon(
    any_of=(
        "log in", "login", "sign in", "signin", "account required", "create an account",
        "giriş yap", "üye ol", "oturum aç", "üye girişi",
    ),
)
VARIANT_UNRESOLVED = Lexicon(
    any_of=("size", "beden", "variant", "color", "colour", "renk", "option", "seçenek", "select", "seç"),
)


def cart_has_items(observation: Any) -> bool:
    """Positive evidence required: no empty-cart signal and at least one added signal."""
    lowered = normalize(observation)
    if CART_EMPTY.first_hit(lowered) is not None:
        return False
    return CART_ADDED.first_hit(lowered) is not None


# ---------------------------------------------------------------------------
# Homepage
# ---------------------------------------------------------------------------

HOMEPAGE_RULES: Tuple[Rule, ...] = (
    Rule(
        id="homepage-no-search",
        category=WARNING,
        title="No Visible Search",
        description="The homepage does not offer a visible search bar or search icon",
        recommendation="Add a prominent search bar in the header so shoppers can jump straight to products",
        when=Lexicon(
            all_of=(
                ("search", "arama"),
                negated("search", "arama"),
            ),
        ),
    ),
    Rule(
        id="homepage-navigation-unclear",
        category=WARNING,
        title="Navigation Unclear",
        description="Main navigation is confusing or hard to use",
        recommendation="Simplify the main menu and label product categories clearly",
        when=Lexicon(
            any_of=(
                re.compile(r"(?:navigation|menu|menü)\w*\s+(?:\w+\s+){0,2}?(?:unclear|confusing|cluttered|hidden|hard)"),
                "confusing navigation",
                "unclear navigation",
                "hard to navigate",
                "difficult to navigate",
                "navigasyon karmaşık",
                "menü karmaşık",
                "gezinmek zor",
            ),
            none_of=("navigation is clear", "clear navigation", "navigasyon net"),
        ),
    ),
    Rule(
        id="homepage-products-hidden",
        category=SUGGESTION,
        title="No Products on Homepage",
        description="Purchasable products with prices are not visible on the homepage",
        recommendation="Feature best-selling products with prices on the homepage or link a Shop section clearly",
        when=LANDING_PAGE,
    ),
    Rule(
        id="homepage-popup-blocking",
        category=WARNING,
        title="Popup Blocks Content",
        description="A popup or overlay covers the page on arrival",
        recommendation="Delay newsletter/cookie popups or make them easy to dismiss",
        when=Lexicon(
            all_of=(
                ("popup", "pop-up", "modal", "newsletter", "cookie banner", "overlay", "açılır pencere"),
                ("block", "cover", "obscur", "engelliyor", "kaplıyor"),
            ),
            none_of=("no popup", "no pop-up", "no modal", "no overlay"),
        ),
    ),
    Rule(
        id="homepage-prices-visible",
        category=POSITIVE,
        title="Products and Prices Visible",
        description="Products with prices are visible straight from the homepage",
        recommendation="Keep featured products and prices above the fold",
        when=Lexicon(
            any_of=(
                affirmed("products with prices are visible", "products are visible", "prices are visible"),
                "ürünler fiyatlarıyla",
                "fiyatlar görünüyor",
            ),
            none_of=(
                "no price",
                "prices are not",
                "without price",
                "no products",
                "no purchasable",
                "not visible",
                "fiyat yok",
            ),
        ),
    ),
)


# ---------------------------------------------------------------------------
# Product page
# ---------------------------------------------------------------------------

_REVIEWS_NEGATED = negated("review", "rating", "yorum", "değerlendirme", "puan")
_IMAGES = r"image|photo|picture|görsel|fotoğraf|resim"

PRODUCT_PAGE_RULES: Tuple[Rule, ...] = (
    Rule(
        id="pdp-price-unclear",
        category=WARNING,
        title="Price Not Clear",
        description="The product price is missing, hidden or hard to read",
        recommendation="Show the price prominently next to the product title, including any discount",
        when=Lexicon(any_of=negated("price", "fiyat")),
    ),
    Rule(
        id="pdp-low-quality-images",
        category=WARNING,
        title="Poor Product Images",
        description="Product images are missing, small or low quality",
        recommendation="Use multiple high-resolution images with zoom",
        when=Lexicon(
            any_of=(
                re.compile(rf"(?:{_IMAGES})\w*\s+(?:\w+\s+){{0,2}}?(?:low[- ]quality|blurry|pixelated|small|poor|bulanık|kalitesiz)"),
                re.compile(rf"(?:low[- ]quality|blurry|pixelated|poor)\s+(?:\w+\s+)?(?:{_IMAGES})"),
            ) + negated(_IMAGES),
        ),
    ),
    Rule(
        id="pdp-add-to-cart-not-prominent",
        category=WARNING,
        title="Add to Cart Not Prominent",
        description="The Add to Cart button is hard to find or not visually prominent",
        recommendation="Make Add to Cart a high-contrast primary button visible without scrolling",
        when=Lexicon(
            any_of=negated(r"add[- ]to[- ]cart", "add to bag", "sepete ekle")
            + (
                re.compile(r"(?:add[- ]to[- ]cart|add to bag|sepete ekle)\w*\s+(?:\w+\s+){0,3}?(?:below the fold|hard to (?:find|see)|small|not prominent)"),
            ),
        ),
    ),
    Rule(
        id="pdp-thin-description",
        category=SUGGESTION,
        title="Thin Product Description",
        description="The product description is missing or too brief to answer buyer questions",
        recommendation="Add materials, dimensions, care instructions and use cases to the description",
        when=Lexicon(
            any_of=negated("description", "açıklama")
            + ("short description", "thin description", "minimal description", "brief description"),
        ),
    ),
    Rule(
        id="pdp-no-stock-indicator",
        category=SUGGESTION,
        title="No Stock Indicator",
        description="The page does not communicate stock availability",
        recommendation="Show an in-stock indicator or low-stock message near the Add to Cart button",
        when=Lexicon(
            any_of=negated("stock indicator", "stock status", "availability", "inventory", "stok"),
            none_of=("out of stock", "sold out", "tükendi"),
        ),
    ),
    Rule(
        id="pdp-no-reviews",
        category=SUGGESTION,
        title="No Customer Reviews",
        description="No customer reviews or ratings are shown on the product page",
        recommendation="Display star ratings and customer reviews near the product title",
        when=Lexicon(any_of=_REVIEWS_NEGATED),
    ),
    Rule(
        id="pdp-reviews-present",
        category=POSITIVE,
        title="Customer Reviews Shown",
        description="Ratings or customer reviews are visible on the product page",
        recommendation="Keep reviews close to the purchase controls",
        when=Lexicon(
            any_of=(
                re.compile(r"\d+(?:[.,]\d+)?\s*(?:stars?|reviews?|ratings?|yıldız|yorum|değerlendirme)"),
                "customer reviews",
                "star rating",
                "müşteri yorumları",
            ),
            none_of=_REVIEWS_NEGATED,
        ),
    ),
    Rule(
        id="pdp-variant-selector-confusing",
        category=WARNING,
        title="Confusing Variant Selector",
        description="Size, color or variant selection is confusing",
        recommendation="Use labelled swatches or buttons for variants and mark unavailable options clearly",
        when=Lexicon(
            any_of=(
                re.compile(r"(?:variant|size|colou?r|beden|renk)\w*\s+(?:\w+\s+){0,3}?(?:confusing|unclear|hard to|difficult|karmaşık|anlaşılmaz)"),
            ),
        ),
    ),
    Rule(
        id="pdp-no-size-guide",
        category=SUGGESTION,
        title="No Size Guide",
        description="Sizes are offered without a size guide",
        recommendation="Link a size chart next to the size selector",
        when=Lexicon(any_of=negated("size guide", "size chart", "beden tablosu", "beden rehberi")),
    ),
    Rule(
        id="pdp-no-shipping-info",
        category=SUGGESTION,
        title="No Shipping Information",
        description="Shipping cost or delivery time is not shown on the product page",
        recommendation="State delivery time and shipping cost (or free-shipping threshold) near the price",
        when=Lexicon(any_of=negated("shipping", "delivery", "kargo", "teslimat")),
    ),
    Rule(
        id="pdp-no-trust-signals",
        category=SUGGESTION,
        title="Missing Trust Signals",
        description="No return policy, guarantee or security signals near the purchase area",
        recommendation="Add return policy, secure payment and guarantee badges near Add to Cart",
        when=Lexicon(any_of=negated("trust", "guarantee", "return policy", "returns", "güven", "iade", "garanti")),
    ),
)


# ---------------------------------------------------------------------------
# Cart experience
# ---------------------------------------------------------------------------

_FREE_SHIPPING_NEGATED = negated("free shipping", "ücretsiz kargo", "shipping threshold")
_UPSELL_NEGATED = negated("upsell", "recommend", "cross-sell", "related product", "öneri")

CART_RULES: Tuple[Rule, ...] = (
    Rule(
        id="cart-feedback-unclear",
        category=WARNING,
        title="Unclear Add-to-Cart Feedback",
        description="Adding to cart gave no clear confirmation",
        recommendation="Show a cart drawer, toast or badge update confirming the item was added",
        when=Lexicon(
            any_of=negated("confirmation", "success message", "feedback", "notification", "onay", "bildirim")
            + ("unclear whether", "not sure if"),
        ),
    ),
    Rule(
        id="cart-free-shipping-threshold",
        category=POSITIVE,
        title="Free Shipping Threshold Shown",
        description="The cart tells shoppers how far they are from free shipping",
        recommendation="Keep the free-shipping progress message visible in the cart",
        when=Lexicon(
            any_of=(
                re.compile(r"free shipping\s+(?:\w+\s+){0,4}?(?:over|above|threshold|away|spend|orders)"),
                re.compile(r"(?:spend|add)\s+\S+\s+(?:more\s+)?(?:for|to get)\s+free shipping"),
                re.compile(r"ücretsiz kargo\w*\s+(?:\w+\s+){0,3}?(?:kaldı|üzeri)"),
            ),
            none_of=_FREE_SHIPPING_NEGATED,
        ),
    ),
    Rule(
        id="cart-no-free-shipping-message",
        category=SUGGESTION,
        title="No Free Shipping Message",
        description="The cart does not mention a free-shipping threshold",
        recommendation="Add a free-shipping progress bar to lift average order value",
        when=Lexicon(any_of=_FREE_SHIPPING_NEGATED),
    ),
    Rule(
        id="cart-upsell-present",
        category=POSITIVE,
        title="Cart Upsells Present",
        description="The cart suggests related or complementary products",
        recommendation="Keep upsells relevant and lightweight",
        when=Lexicon(
            any_of=(
                "you may also like", "frequently bought", "recommended products", "upsell", "cross-sell",
                "bunları da", "önerilen ürünler", "birlikte alınan",
            ),
            none_of=_UPSELL_NEGATED,
        ),
    ),
    Rule(
        id="cart-no-upsell",
        category=SUGGESTION,
        title="No Cart Upsells",
        description="The cart does not suggest complementary products",
        recommendation="Add a small 'frequently bought together' row to the cart",
        when=Lexicon(any_of=_UPSELL_NEGATED),
    ),
    Rule(
        id="cart-checkout-path-unclear",
        category=WARNING,
        title="Checkout Path Unclear",
        description="It is not obvious how to proceed from the cart to checkout",
        recommendation="Place a prominent Checkout button at the top and bottom of the cart",
        when=Lexicon(
            any_of=negated("checkout button", "checkout link", "path to checkout", "ödeme butonu", "ödemeye geç")
            + (re.compile(r"checkout\s+(?:\w+\s+){0,3}?(?:hard to find|unclear|hidden|confusing)"),),
        ),
    ),
)


# ---------------------------------------------------------------------------
# Checkout page
# ---------------------------------------------------------------------------

_GUEST_NEGATED = negated("guest", "misafir")
_TRUST_NEGATED = negated("trust badge", "security badge", "ssl", "secure checkout", "security seal", "güvenli ödeme", "güven")
_ERRORS_NEGATED = negated("validation error", "error", "hata")

CHECKOUT_RULES: Tuple[Rule, ...] = (
    Rule(
        id="checkout-no-guest",
        category=CRITICAL,
        title="No Guest Checkout",
        description="Shoppers must create an account or log in before paying",
        recommendation="Offer guest checkout; ask for account creation after the order",
        when=Lexicon(
            any_of=_GUEST_NEGATED
            + (
                "account required",
                "must create an account",
                "must log in",
                "login required",
                "üyelik zorunlu",
                "giriş yapmanız gerek",
                "üye girişi zorunlu",
            ),
        ),
    ),
    Rule(
        id="checkout-guest-available",
        category=POSITIVE,
        title="Guest Checkout Available",
        description="Shoppers can check out without an account",
        recommendation="Keep guest checkout as the default path",
        when=Lexicon(
            any_of=("guest checkout", "continue as guest", "checkout as guest", "misafir", "üye olmadan"),
            none_of=_GUEST_NEGATED + ("account required", "login required", "üyelik zorunlu"),
        ),
    ),
    Rule(
        id="checkout-shipping-cost-hidden",
        category=WARNING,
        title="Shipping Cost Not Clear",
        description="Shipping cost is not shown before the payment step",
        recommendation="Show shipping cost (or 'free') in the order summary before payment",
        when=Lexicon(
            any_of=negated("shipping cost", "shipping price", "shipping fee", "delivery cost", "kargo ücreti")
            + ("calculated at next step", "calculated later", "sonraki adımda hesaplan"),
        ),
    ),
    Rule(
        id="checkout-too-many-fields",
        category=WARNING,
        title="Too Many Form Fields",
        description="The checkout form asks for more information than needed",
        recommendation="Remove optional fields and use address autocomplete",
        when=Lexicon(
            any_of=(
                "too many fields",
                "long form",
                "lengthy form",
                "many required fields",
                "çok fazla alan",
                re.compile(r"\b(?:1[5-9]|[2-9]\d)\s+(?:\w+\s+)?(?:fields|alan)"),
            ),
        ),
    ),
    Rule(
        id="checkout-validation-errors",
        category=WARNING,
        title="Form Validation Errors",
        description="The checkout form showed validation errors while filling it",
        recommendation="Validate inline with clear, specific messages and accept common input formats",
        when=Lexicon(
            any_of=("validation error", "error message", "invalid", "hata mesajı", "geçersiz"),
            none_of=_ERRORS_NEGATED,
        ),
    ),
    Rule(
        id="checkout-no-progress-indicator",
        category=SUGGESTION,
        title="No Progress Indicator",
        description="Checkout does not show which step the shopper is on",
        recommendation="Add a step indicator (Information > Shipping > Payment)",
        when=Lexicon(any_of=negated("progress", "step indicator", "breadcrumb", "adım")),
    ),
    Rule(
        id="checkout-no-trust-badges",
        category=WARNING,
        title="No Trust Badges",
        description="Checkout shows no security or trust signals",
        recommendation="Show secure-payment and SSL badges near the payment button",
        when=Lexicon(any_of=_TRUST_NEGATED),
    ),
    Rule(
        id="checkout-trust-badges-present",
        category=POSITIVE,
        title="Trust Badges Present",
        description="Checkout shows security or trust signals",
        recommendation="Keep trust badges close to the payment button",
        when=Lexicon(
            any_of=("trust badge", "security badge", "ssl", "secure checkout", "güvenli ödeme", "3d secure"),
            none_of=_TRUST_NEGATED,
        ),
    ),
    Rule(
        id="checkout-discount-field-prominent",
        category=SUGGESTION,
        title="Prominent Discount Field",
        description="A prominent discount-code field can send shoppers off-site hunting for codes",
        recommendation="Collapse the discount field behind a small 'Have a code?' link",
        when=Lexicon(
            any_of=(
                re.compile(r"(?:discount|coupon|promo|indirim|kupon)\w*\s+(?:code\s+)?(?:field|box|input|alanı)?\s*(?:\w+\s+){0,2}?(?:prominent|at the top|eye-catching|öne çıkıyor)"),
            ),
        ),
    ),
    Rule(
        id="checkout-payment-button-unclear",
        category=WARNING,
        title="Payment Button Unclear",
        description="The button to continue to payment is unclear or hard to find",
        recommendation="Use one high-contrast primary button with an explicit label such as 'Continue to payment'",
        when=Lexicon(
            any_of=negated("payment button", "continue button", "ödeme butonu")
            + (re.compile(r"(?:payment|pay|continue|ödeme)\s+button\w*\s+(?:\w+\s+){0,2}?(?:unclear|confusing|hidden|small|ambiguous)"),),
        ),
    ),
    Rule(
        id="checkout-no-aov-incentive",
        category=SUGGESTION,
        title="No Order Value Incentives",
        description="Checkout has no incentive to increase order value",
        recommendation="Show a free-shipping threshold or a relevant add-on offer in the order summary",
        when=Lexicon(any_of=negated("free shipping threshold", "incentive", "bundle", "ücretsiz kargo")),
    ),
)


# ---------------------------------------------------------------------------
# Stage outcome templates
# ---------------------------------------------------------------------------

NO_PRODUCTS = Rule(
    id="no-products",
    category=CRITICAL,
    title="Could not find products",
    description="Unable to locate and open a purchasable product page",
    recommendation="Ensure products are clearly visible and clickable on the homepage or add a shop/products link",
)
ADD_TO_CART_SUCCESS = Rule(
    id="add-to-cart-success",
    category=POSITIVE,
    title="Add to Cart Works",
    description="The product was added to the cart in {seconds} seconds",
    recommendation="Keep the add-to-cart flow this smooth",
)
FAST_ADD_TO_CART = Rule(
    id="fast-add-to-cart",
    category=POSITIVE,
    title="Good Add-to-Cart Speed",
    description="Product was added to cart in {seconds} seconds",
    recommendation="Keep maintaining this smooth experience",
)
ADD_TO_CART_OUT_OF_STOCK = Rule(
    id="add-to-cart-out-of-stock",
    category=WARNING,
    title="Product Out of Stock",
    description="The selected product could not be added because it is out of stock",
    recommendation="Hide or clearly mark sold-out products and variants in listings",
)
ADD_TO_CART_LOGIN_REQUIRED = Rule(
    id="add-to-cart-login-required",
    category=CRITICAL,
    title="Login Required to Add to Cart",
    description="The store asks shoppers to log in before adding to cart",
    recommendation="Let anonymous shoppers build a cart; ask for login at checkout at the earliest",
)
ADD_TO_CART_VARIANT_UNRESOLVED = Rule(
    id="add-to-cart-variant-unresolved",
    category=CRITICAL,
    title="Variant Selection Blocks Add to Cart",
    description="A required size/color/variant could not be selected, so the product never reached the cart",
    recommendation="Preselect an available variant or make required selectors obvious and error messages specific",
)
ADD_TO_CART_FAILED = Rule(
    id="add-to-cart-failed",
    category=CRITICAL,
    title="Add to Cart Failed",
    description="Could not add the product to cart",
    recommendation="Ensure the Add to Cart button is clearly visible and functional",
)
CHECKOUT_FAILED = Rule(
    id="checkout-failed",
    category=CRITICAL,
    title="Could not reach checkout",
    description="Failed to navigate to checkout after adding to cart",
    recommendation="Ensure checkout flow is accessible and intuitive",
)
CHECKOUT_NAV_UNCLEAR = Rule(
    id="checkout-nav-unclear",
    category=WARNING,
    title="Checkout Navigation Unclear",
    description="After using the cart controls the page did not look like a cart or checkout",
    recommendation='Add clear "Proceed to Checkout" or cart buttons after adding items',
)
CHECKOUT_FORM_ISSUES = Rule(
    id="checkout-form-issues",
    category=WARNING,
    title="Checkout Form Issues",
    description="The checkout form could not be filled completely",
    recommendation="Keep checkout forms short, standard and free of blocking modals",
)
UX_ANALYSIS_INCOMPLETE = Rule(
    id="ux-analysis-incomplete",
    category=WARNING,
    title="UX Analysis Incomplete",
    description="The {page} could not be analyzed",
    recommendation="Check that the page renders without blocking overlays or bot walls",
)
ANALYSIS_FAILED = Rule(
    id="analysis-failed",
    category=CRITICAL,
    title="Analysis Failed",
    description="The analysis could not be completed",
    recommendation="Check if the store URL is accessible",
)


def diagnose_add_to_cart(observation: Any) -> Rule:
    """Pick the most specific add-to-cart failure for a diagnostic observation."""
    lowered = normalize(observation)
    for lexicon, rule in (
        (OUT_OF_STOCK, ADD_TO_CART_OUT_OF_STOCK),
        (LOGIN_REQUIRED, ADD_TO_CART_LOGIN_REQUIRED),
        (VARIANT_UNRESOLVED, ADD_TO_CART_VARIANT_UNRESOLVED),
    ):
        if lexicon.first_hit(lowered) is not None:
            return rule
    return ADD_TO_CART_FAILED
