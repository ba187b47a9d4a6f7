"""テスト共通の markup 生成."""

import pytest

ORGANIC_TEMPLATE = (
    '<div data-asin="{asin}" data-index="{index}" data-component-type="s-search-result" '
    'class="sg-col-4-of-24 s-result-item s-asin">'
    '<div class="s-card-container">'
    '<span class="rush-component"><a class="a-link-normal s-no-outline" '
    'href="/Wireless-Earbuds/dp/{asin}/ref=sr_1_{index}">'
    '<img class="s-image" src="https://m.media-amazon.com/images/I/71abcdEFGH.jpg" '
    'alt="Wireless Earbuds"></a></span>'
    "{badge}"
    '<h2 class="a-size-mini s-line-clamp-2"><a class="a-link-normal s-underline-text a-text-normal" '
    'href="/Wireless-Earbuds/dp/{asin}/ref=sr_1_{index}">'
    '<span class="a-size-medium a-color-base a-text-normal">'
    "Wireless Earbuds with Active Noise Cancellation, 40H Playtime, Deep Bass</span></a></h2>"
    '<div class="a-row a-size-small"><span class="a-icon-alt">4.2 out of 5 stars</span></div>'
    '<span class="a-price"><span class="a-offscreen">1,299</span></span>'
    '<div class="a-row">FREE delivery Sat, 19 Oct</div>'
    "</div></div>"
)

SPONSORED_BADGE = (
    '<div class="a-row a-spacing-micro"><span class="a-declarative" data-action="a-popover">'
    '<a class="puis-label-popover s-label-popover-default" '
    'aria-label="Sponsored Ad - View sponsored information">'
    '<span class="puis-sponsored-label-text">Sponsored</span></a></span></div>'
)


def make_organic(asin: str, index: int = 1) -> str:
    return ORGANIC_TEMPLATE.format(asin=asin, index=index, badge="")


def make_sponsored(asin: str, index: int = 1) -> str:
    return ORGANIC_TEMPLATE.format(asin=asin, index=index, badge=SPONSORED_BADGE)


@pytest.fixture
def organic_html():
    return make_organic


@pytest.fixture
def sponsored_html():
    return make_sponsored
