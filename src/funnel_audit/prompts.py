"""
Natural-language instructions and observation prompts sent to the page agent.

Extract prompts ask for one short line per dimension and for absences to be stated
explicitly ("not visible", "missing"), which is what the rule tables key on.
"""

from __future__ import annotations

from typing import Mapping

NAVIGATE = "Navigate to {url}"

LANDING_CHECK = (
    "Look at this homepage. Are purchasable products with prices visible on this page, "
    "or must I navigate to a shop/products/category section first? Also say whether a search "
    "bar or search icon is visible, whether the main navigation is clear or confusing, and "
    "whether a popup or overlay blocks the content."
)

OPEN_CATALOG = (
    'Open the products menu (hover or click "Shop", "Products", "Collections", "Mağaza", '
    '"Ürünler" or "Kategoriler") and then click the first product category listed.'
)

CLOSE_MENU_AND_OPEN_CATEGORY = (
    "A navigation dropdown is still open. Click the first category link inside the open "
    "dropdown menu so that a product listing page loads."
)

CLICK_PRODUCT = (
    "Find and click on any product that can be purchased. Look for product cards, product "
    "images or product titles with a price."
)

CLICK_SPECIFIC_PRODUCT = (
    "Click the title or image of one specific individual product (a single item with its own "
    "price), not a category, collection or banner."
)

PRODUCT_PAGE_CHECK = (
    "Is this a single-product page with an add-to-cart (Add to Cart, Add to Bag, Sepete Ekle) "
    "control? Answer yes or no first, then explain briefly."
)

PRODUCT_PAGE_UX = (
    "Analyze this product page for a shopper. Answer with one short line for each item and "
    "say explicitly when something is not visible or missing:\n"
    "1. Price: is the price clearly visible?\n"
    "2. Images: are product images large and good quality?\n"
    "3. Add to cart: is the Add to Cart button prominent?\n"
    "4. Description: is there a useful product description?\n"
    "5. Stock: is there a stock/availability indicator?\n"
    "6. Reviews: are customer reviews or ratings shown (with count if any)?\n"
    "7. Variants: are size/color selectors clear or confusing?\n"
    "8. Size guide: is a size guide available?\n"
    "9. Shipping: is shipping cost or delivery time shown?\n"
    "10. Trust: are return policy, guarantee or secure payment signals shown?"
)

ADD_TO_CART = (
    'Click the "Add to Cart" button, "Add to Bag" button, "Sepete Ekle" button or any button '
    "that adds this product to the shopping cart. If there are size or variant options, select "
    "the first available option first."
)

ADD_TO_CART_EXPLICIT_VARIANT = (
    "Click the first enabled (not crossed out, not sold out) size or color option button on "
    'this product page, then click the "Add to Cart" / "Sepete Ekle" button again.'
)

ADD_TO_CART_DROPDOWN_VARIANT = (
    "Open the size or variant dropdown (select element) on this product page, choose the first "
    'available option that is not sold out, then click the "Add to Cart" / "Sepete Ekle" button.'
)

VARIANT_ERROR_CHECK = (
    "Is any error or warning message shown asking to select a size, color or variant "
    '(for example "Please select a size" or "Lütfen beden seçiniz")? If there is no such '
    'message, answer "no error". Otherwise quote the message.'
)

CART_STATE = (
    "Look at the cart icon badge and any notification on the page. How many items does the cart "
    "show? Was a success message such as 'added to cart' or 'sepete eklendi' displayed?"
)

CART_EXPERIENCE = (
    "Describe the add-to-cart experience and the cart. One short line each, stating clearly "
    "when something is not shown:\n"
    "1. Feedback: was there clear confirmation that the item was added?\n"
    "2. Free shipping: is a free shipping threshold message shown?\n"
    "3. Upsell: are related or recommended products suggested?\n"
    "4. Checkout path: is the path to checkout clear?"
)

ADD_TO_CART_DIAGNOSTIC = (
    "The product could not be added to the cart. What is blocking it? Is the product out of "
    "stock or sold out, does the store require logging in, is a size/color/variant selection "
    "still required, or is something else wrong? Quote any message on the page."
)

GO_TO_CHECKOUT = (
    'Go to the shopping cart or checkout. Click on "View Cart", "Checkout", "Go to Cart", '
    '"Sepete Git", "Sepetim", "Ödeme", the cart icon, or any link that takes you to the checkout process.'
)

CURRENT_PAGE_CHECK = "What page are we on? Is this a cart page, checkout page, or product page?"

PROCEED_TO_CHECKOUT = (
    'Click the "Checkout", "Proceed to Checkout", "Ödemeye Geç" or "Alışverişi Tamamla" button '
    "on this cart page."
)

GUEST_CHECKOUT = (
    'If there is an option to check out as a guest ("Guest Checkout", "Continue as Guest", '
    '"Üye Olmadan Devam Et"), choose it. Do not create an account.'
)

FILL_CONTACT = "Fill the email field with {email} and, if a phone field is visible, fill it with {phone}."

FILL_NAME = "Fill the first name field with {first_name} and the last name field with {last_name}."

OPEN_ADDRESS_FORM = (
    'If no address form is visible, click "Add address", "New address" or "Yeni Adres Ekle" '
    "to open it."
)

FILL_ADDRESS = (
    "Fill the address form: address line {address}, city {city}, postal code {postal_code}, "
    "country {country}. Leave optional fields empty."
)

SAVE_ADDRESS_MODAL = 'If the address is in a modal or popup, click its "Save" / "Kaydet" button.'

SELECT_SHIPPING = "If shipping methods are listed, select the first available shipping method."

ADVANCE_TO_PAYMENT = (
    'Click "Continue", "Continue to payment" or "Devam Et" to advance to the payment step. '
    'NEVER click "Pay", "Pay now", "Place order", "Complete order", "Siparişi Tamamla" or '
    "any button that submits payment."
)

CHECKOUT_UX = (
    "Analyze this checkout page. Answer with one short line for each item and say explicitly "
    "when something is not visible or missing:\n"
    "1. Discount field: is a discount/coupon field prominent?\n"
    "2. Upsell: are extra products offered?\n"
    "3. Payment button: is the button to continue/pay clear?\n"
    "4. Trust badges: are security/trust badges shown?\n"
    "5. Shipping cost: is the shipping cost clear before payment?\n"
    "6. Guest checkout: can I check out without an account?\n"
    "7. Fields: how many form fields are required?\n"
    "8. Errors: were any validation errors shown?\n"
    "9. Progress: is there a step/progress indicator?\n"
    "10. Incentives: is there any incentive to increase order value (free shipping threshold, bundles)?"
)


def render(template: str, values: Mapping[str, object]) -> str:
    return template.format(**values)
