"""Tests for attribute detection, selectors, variant clusters and product aggregation."""

import pytest

from conftest import PRODUCT_URL, PRODUCT_NAME, make_interaction
from worldmodel.classifiers.base_classifier import AttributeData, ElementDetails
from worldmodel.classifiers.intent_classifier import IntentClassifier
from worldmodel.extractors.attribute_detector import AttributeDetector, SizeDetector
from worldmodel.extractors.product_extractor import ProductPageAggregator
from worldmodel.extractors.selector_builder import SelectorBuilder
from worldmodel.extractors.variant_clusters import VariantClusterExtractor
from worldmodel.utils.interaction import parse_interactions


def sighting(value, type='color', selector=None, class_name='', box=None):
    return AttributeData(
        type=type,
        value=value,
        selector=selector or f'#{value.lower()}',
        element_details=ElementDetails(tag='button', class_name=class_name),
        position=box or {},
    )


class TestAttributeDetector:

    @pytest.mark.parametrize('text, expected_type', [
        ('Navy', 'color'),
        ('dark green', 'color'),
        ('XL', 'size'),
        ('32W', 'size'),
        ('Add to Cart', 'action'),
        ('Slim Fit', 'style'),
        ('Sold out', 'availability'),
    ])
    def test_detects_type(self, text, expected_type):
        match = AttributeDetector().detect(text)

        assert match is not None
        assert match.attribute_type == expected_type

    def test_plain_text_is_not_attribute(self):
        assert AttributeDetector().detect('Free shipping on orders') is None
        assert AttributeDetector().detect('   ') is None

    @pytest.mark.parametrize('text', ['29.99', '4 reviews', '2 colors'])
    def test_leading_digits_are_not_sizes(self, text):
        assert SizeDetector().detect(text).confidence == pytest.approx(0.8)
        assert AttributeDetector().detect(text) is None

    def test_shoe_sizes(self):
        match = SizeDetector().detect('9.5')

        assert match.confidence == pytest.approx(0.85)


class TestSelectorBuilder:

    def test_capture_selector_wins(self):
        interaction = make_interaction('Navy', PRODUCT_URL, selector='#swatch-navy')

        assert SelectorBuilder().best_selector(interaction) == '#swatch-navy'

    def test_builds_css_with_variant_attributes(self):
        interaction = make_interaction(
            'M', PRODUCT_URL, tag='button', class_name='size-option selected',
            attributes={'data-size': 'M', 'aria-label': 'Size M'},
        )

        css = SelectorBuilder().build_css(interaction)

        assert css == 'button.size-option.selected[data-size="M"]'

    def test_fallback_chain_excludes_primary(self):
        interaction = make_interaction('M', PRODUCT_URL, tag='button', attributes={'id': 'size-m'})

        builder = SelectorBuilder()
        chain = builder.fallback_chain(interaction)

        assert builder.best_selector(interaction) == 'button#size-m'
        assert 'button#size-m' not in chain
        assert '//*[@id="size-m"][text()="M"]' in chain

    def test_replay_attributes(self):
        interaction = make_interaction(
            'M', PRODUCT_URL, attributes={'data-size': 'M', 'style': 'color: red'}
        )

        assert SelectorBuilder().replay_attributes(interaction) == {'data-size': 'M'}


class TestVariantClusterExtractor:

    def test_groups_by_type(self):
        clusters = VariantClusterExtractor().extract([
            sighting('Navy'), sighting('Black'), sighting('M', type='size'),
            sighting('Add to Bag', type='action'),
        ])

        assert [o.value for o in clusters['color'].options] == ['Navy', 'Black']
        assert [o.value for o in clusters['size'].options] == ['M']
        assert 'action' not in clusters

    def test_known_value_keeps_first_selector(self):
        extractor = VariantClusterExtractor()
        clusters = extractor.extract([sighting('Navy', selector='#first')])

        clusters = extractor.extract([sighting(' navy ', selector='#second')], clusters)

        assert len(clusters['color'].options) == 1
        assert clusters['color'].options[0].selector == '#first'

    def test_clusters_never_shrink(self):
        extractor = VariantClusterExtractor()
        clusters = extractor.extract([sighting('Navy'), sighting('Black')])

        clusters = extractor.extract([], clusters)

        assert clusters['color'].total_options_found == 2

    def test_availability_refresh(self):
        extractor = VariantClusterExtractor()
        clusters = extractor.extract([sighting('M', type='size')])

        clusters = extractor.extract([sighting('M', type='size', class_name='size sold-out')], clusters)

        option = clusters['size'].options[0]
        assert option.availability == 'out_of_stock'
        assert option.in_stock is False

    def test_availability_not_refreshed_when_disabled(self):
        extractor = VariantClusterExtractor(refresh_availability=False)
        clusters = extractor.extract([sighting('M', type='size')])

        clusters = extractor.extract([sighting('M', type='size', class_name='disabled')], clusters)

        assert clusters['size'].options[0].availability == 'in_stock'

    def test_untyped_sighting_is_classified(self):
        clusters = VariantClusterExtractor().extract([sighting('Olive', type='')])

        assert clusters['color'].options[0].value == 'Olive'

    @pytest.mark.parametrize('boxes, layout', [
        ([{'x': 0, 'y': 10}, {'x': 40, 'y': 10}], 'horizontal_row'),
        ([{'x': 0, 'y': 10}, {'x': 0, 'y': 50}], 'vertical_list'),
        ([{'x': 0, 'y': 10}, {'x': 40, 'y': 10}, {'x': 0, 'y': 50}], 'grid'),
    ])
    def test_layout_inference(self, boxes, layout):
        sightings = [sighting(f'{n}', type='size', box=box) for n, box in enumerate(boxes, start=30)]

        clusters = VariantClusterExtractor().extract(sightings)

        assert clusters['size'].layout == layout


class TestProductPageAggregator:

    def classify(self, records):
        interactions = parse_interactions(records)
        return interactions, IntentClassifier().classify_session(interactions)

    def test_one_product_per_page(self, browse_session):
        interactions, classifications = self.classify(browse_session)
        aggregator = ProductPageAggregator()

        groups = aggregator.group_by_product_page(interactions, classifications)

        assert len(groups) == 1
        product = aggregator.aggregate(list(groups.values())[0])
        assert product.product_name == PRODUCT_NAME
        assert product.product_id == 'oxford-cotton-shirt'
        assert product.product_type == 'shirt'
        assert [a.value for a in product.attributes['color']] == ['Navy']
        assert [a.value for a in product.attributes['size']] == ['M']
        assert [a.value for a in product.attributes['action']] == ['Add to Bag']
        assert len(product.variant_sightings) == 2

    def test_name_inferred_from_url_when_no_title_clicked(self, record):
        url = 'https://www2.hm.com/en_us/relaxed-fit-hoodie/productpage.1234567001.html'
        interactions, classifications = self.classify([
            record('Navy', url),
            record('L', url.replace('001.html', '002.html')),
        ])
        aggregator = ProductPageAggregator()

        groups = aggregator.group_by_product_page(interactions, classifications)

        assert list(groups) == ['productpage-1234567']
        product = aggregator.aggregate(groups['productpage-1234567'])
        assert product.product_name == 'Relaxed Fit Hoodie'
        assert product.product_id == '1234567001'
        assert product.confidence == pytest.approx(0.8)
        assert product.selector == 'page-main-product'

    def test_page_without_product_signals(self, record):
        interactions, classifications = self.classify([record('', PRODUCT_URL, type='PAGE_VIEW')])
        aggregator = ProductPageAggregator()

        pairs = aggregator.group_by_product_page(interactions, classifications)[PRODUCT_URL]

        assert aggregator.aggregate(pairs) is None

    @pytest.mark.parametrize('name, valid', [
        ('Relaxed Linen Shirt', True),
        ('Sale', False),
        ('M', False),
        ('Add to bag', False),
    ])
    def test_product_name_validation(self, name, valid):
        assert ProductPageAggregator.is_valid_product_name(name) is valid

    def test_price_extraction(self):
        assert ProductPageAggregator.extract_price('Now $24.99') == pytest.approx(24.99)
        assert ProductPageAggregator.extract_price('Free') is None
