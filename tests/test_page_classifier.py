"""Tests for page classification from semantic features."""

import pytest

from conftest import SHOP, PRODUCT_URL, make_interaction
from worldmodel.classifiers.page_classifier import PageClassifier


@pytest.fixture
def classifier():
    return PageClassifier()


class TestPageClassifier:

    def test_product_details_with_variants(self, classifier):
        interaction = make_interaction(
            'Size M - Relaxed Linen Shirt', PRODUCT_URL, attributes={'class': 'swatch'}
        )

        page = classifier.classify(interaction)

        assert page.page_type == 'product'
        assert page.confidence == pytest.approx(0.9)
        assert page.semantic_features.has_variant_selectors

    def test_grid_and_navigation_is_category(self, classifier):
        interaction = make_interaction('Shirts', f'{SHOP}/browse/men')
        interaction.context.dom_snapshot = {'nav': {'class': 'menu'}, 'main': {'class': 'product-list'}}

        page = classifier.classify(interaction)

        assert page.page_type == 'category'
        assert page.confidence == pytest.approx(0.85)

    def test_checkout_url_turns_cart_into_checkout(self, classifier):
        page = classifier.classify(make_interaction('Proceed', f'{SHOP}/checkout/cart'))

        assert page.page_type == 'checkout'
        assert page.confidence == pytest.approx(0.8)

    def test_url_fallback(self, classifier):
        page = classifier.classify(make_interaction('Read more', f'{SHOP}/item/123'))

        assert page.page_type == 'product'
        assert page.confidence == pytest.approx(0.6)

    def test_missing_everything_is_unknown(self, classifier):
        page = classifier.classify(make_interaction('', ''))

        assert page.page_type == 'unknown'
        assert page.confidence == pytest.approx(0.5)

    def test_letter_sizes_are_case_sensitive(self, classifier):
        assert classifier.detect_variant_selectors('XL', {})
        assert not classifier.detect_variant_selectors('Men', {})

    def test_variant_attributes(self, classifier):
        assert classifier.detect_variant_selectors('', {'name': 'size-picker'})
        assert classifier.detect_variant_selectors('', {'class': 'color-swatch'})

    def test_snapshot_search_handles_strings(self):
        assert PageClassifier.search_snapshot('<div class="Breadcrumb">', ['breadcrumb'])
        assert not PageClassifier.search_snapshot(None, ['nav'])

    def test_features_serialize(self, classifier):
        page = classifier.classify(make_interaction('Add to cart', PRODUCT_URL))

        features = page.semantic_features.to_dict()

        assert features['has_cart_indicators'] is True
        assert set(features) == {
            'has_product_grid', 'has_product_details', 'has_navigation',
            'has_cart_indicators', 'has_search_functionality', 'has_variant_selectors',
        }
