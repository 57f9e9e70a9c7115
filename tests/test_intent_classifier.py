"""Tests for the intent classifier cascade."""

import logging

import pytest

from conftest import SHOP, PRODUCT_URL, HM_PRODUCT_URL, PRODUCT_NAME, make_interaction
from worldmodel.classifiers.analyzers import AnalysisInput, CascadeAnalyzer
from worldmodel.classifiers.base_classifier import ScoredResult
from worldmodel.classifiers.intent_classifier import IntentClassifier
from worldmodel.core.config import WorldModelConfig
from worldmodel.utils.interaction import SessionContext


@pytest.fixture
def classifier():
    return IntentClassifier()


class TestProductAttributes:
    """Attribute detection only fires on product detail pages."""

    def test_navy_on_product_page_is_color(self, classifier):
        result = classifier.classify_interaction(make_interaction('Navy', HM_PRODUCT_URL))

        assert result.type == 'product_attribute'
        assert result.confidence == pytest.approx(0.95)
        assert result.attribute_data.type == 'color'
        assert result.attribute_data.value == 'Navy'
        assert result.domain == 'www2.hm.com'

    def test_size_button_records_selector_and_position(self, classifier):
        interaction = make_interaction(
            'M', HM_PRODUCT_URL, selector='#size-m', attributes={'data-size': 'M'},
            box={'x': 12, 'y': 400, 'width': 40, 'height': 40},
        )

        result = classifier.classify_interaction(interaction)

        assert result.attribute_data.type == 'size'
        assert result.attribute_data.selector == '#size-m'
        assert result.attribute_data.position['y'] == 400
        assert result.attribute_data.element_details.xpath.startswith('//')

    def test_add_to_bag_is_action(self, classifier):
        result = classifier.classify_interaction(make_interaction('Add to Bag', PRODUCT_URL))

        assert result.type == 'product_attribute'
        assert result.attribute_data.type == 'action'

    def test_fit_words_in_product_title_do_not_make_an_attribute(self, classifier):
        result = classifier.classify_interaction(make_interaction('Regular Fit Oxford Shirt', HM_PRODUCT_URL))

        assert result.type == 'product'
        assert result.confidence == pytest.approx(0.95)
        assert result.analyzer == 'url'

    def test_price_is_not_a_size(self, classifier):
        result = classifier.classify_interaction(make_interaction('29.99', HM_PRODUCT_URL))

        assert result.type != 'product_attribute'

    def test_color_word_off_product_page_is_not_attribute(self, classifier):
        result = classifier.classify_interaction(make_interaction('Navy', f'{SHOP}/browse/men'))

        assert result.type != 'product_attribute'


class TestURLAndText:

    def test_category_url_wins(self, classifier):
        result = classifier.classify_interaction(make_interaction('Men', f'{SHOP}/browse/men'))

        assert result.type == 'category'
        assert result.confidence == pytest.approx(0.9)
        assert result.analyzer == 'url'
        assert result.extracted_data.category_path == 'men'

    def test_product_url_yields_site_product_id(self, classifier):
        result = classifier.classify_interaction(make_interaction(PRODUCT_NAME, PRODUCT_URL))

        assert result.type == 'product'
        assert result.extracted_data.product_id == 'oxford-cotton-shirt'
        assert result.extracted_data.name == PRODUCT_NAME

    def test_sort_by_without_url_is_ignored(self, classifier):
        result = classifier.classify_interaction(make_interaction('SORT BY', ''))

        assert result.type == 'ignore'
        assert result.confidence == pytest.approx(0.8)

    def test_non_click_is_ignored(self, classifier):
        result = classifier.classify_interaction(make_interaction('Men', f'{SHOP}/browse/men', type='SCROLL'))

        assert result.type == 'ignore'
        assert result.confidence == 1.0

    def test_empty_text_and_url(self, classifier):
        result = classifier.classify_interaction(make_interaction('', ''))

        assert result.type == 'ignore'

    def test_product_name_text_fallback(self, classifier):
        result = classifier.classify_interaction(make_interaction('Slim Fit Cotton Polo Shirt', ''))

        assert result.type == 'product'
        assert result.confidence == pytest.approx(0.6)


class TestCategoryPath:

    def test_url_section_wins_over_text(self, classifier):
        path, text_path, url_path, mismatch = classifier.derive_category_path(
            "Men's Jeans", f'{SHOP}/women/'
        )

        assert path == 'women'
        assert text_path == 'mens-jeans'
        assert url_path == 'women'
        assert mismatch is True

    def test_mismatch_is_logged_and_both_signals_kept(self, classifier, caplog):
        with caplog.at_level(logging.WARNING):
            result = classifier.classify_interaction(make_interaction("Men's Jeans", f'{SHOP}/women/'))

        assert result.type == 'category'
        assert result.extracted_data.category_path == 'women'
        assert result.extracted_data.text_category_path == 'mens-jeans'
        assert result.extracted_data.category_path_mismatch is True
        assert 'category path mismatch' in caplog.text

    def test_matching_sections_do_not_warn(self, classifier, caplog):
        with caplog.at_level(logging.WARNING):
            _, _, _, mismatch = classifier.derive_category_path('Women', f'{SHOP}/browse/women')

        assert mismatch is False
        assert 'category path mismatch' not in caplog.text

    def test_injected_logger_receives_warning(self, caplog):
        logger = logging.getLogger('tests.injected')
        classifier = IntentClassifier(logger=logger)

        with caplog.at_level(logging.WARNING, logger='tests.injected'):
            classifier.derive_category_path("Men's Jeans", f'{SHOP}/women/')

        assert any(r.name == 'tests.injected' for r in caplog.records)


class TestNavigationAndBehavior:

    def test_click_leading_to_product_page(self, classifier):
        clicked = make_interaction('Linen blend summer top', f'{SHOP}/collections')
        following = [make_interaction('', PRODUCT_URL, type='PAGE_VIEW')]

        result = classifier.classify_interaction(clicked, subsequent_interactions=following)

        assert result.type == 'product'
        assert result.confidence == pytest.approx(0.85)
        assert result.analyzer == 'navigation'

    def test_click_staying_on_page_scores_ui(self, classifier):
        clicked = make_interaction('Show filters panel', f'{SHOP}/collections?page=1')
        following = [make_interaction('', f'{SHOP}/collections?page=2', type='PAGE_VIEW')]

        scored = classifier.analyzers.analyze_navigation_intent(
            AnalysisInput(clicked, subsequent_interactions=following)
        )
        result = classifier.classify_interaction(clicked, subsequent_interactions=following)

        assert scored.type == 'ui'
        assert scored.confidence == pytest.approx(0.7)
        # 0.7 does not exceed the navigation threshold, so the text fallback decides
        assert result.type == 'ignore'
        assert result.analyzer == 'text'

    def test_homepage_click_leading_to_category(self, classifier):
        clicked = make_interaction('Men', 'https://www.shop.com/')
        following = [make_interaction('', 'https://www.shop.com/men/shirts/casual.html', type='PAGE_VIEW')]

        result = classifier.classify_interaction(clicked, subsequent_interactions=following)

        assert result.type == 'category'
        assert result.confidence == pytest.approx(0.8)
        assert result.analyzer == 'navigation'

    def test_browsing_context_promotes_category(self, classifier):
        context = SessionContext(user_intent='browse')

        result = classifier.classify_interaction(
            make_interaction('Dresses', f'{SHOP}/collections'), session_context=context
        )

        assert result.type == 'category'
        assert result.confidence == pytest.approx(0.7)
        assert result.analyzer == 'behavior'

    def test_classify_session_uses_lookahead(self, classifier):
        interactions = [
            make_interaction('Linen blend summer top', f'{SHOP}/collections'),
            make_interaction('', PRODUCT_URL, type='PAGE_VIEW'),
        ]

        results = classifier.classify_session(interactions)

        assert len(results) == 2
        assert results[0].type == 'product'
        assert results[1].type == 'ignore'


class TestCascadeConfiguration:

    def test_threshold_is_exclusive(self):
        analyzer = CascadeAnalyzer('url', lambda data: None, 0.8)

        assert analyzer.accepts(ScoredResult('category', 0.9, 'above'))
        assert not analyzer.accepts(ScoredResult('navigation', 0.8, 'boundary'))
        assert not analyzer.accepts(ScoredResult('unknown', 0.0, 'no signal'))

    def test_from_config(self):
        config = WorldModelConfig(url_threshold=0.95, lookahead_window=2)

        classifier = IntentClassifier.from_config(config)

        assert classifier.analyzers.lookahead_window == 2
        url_stage = [a for a in classifier.cascade if a.name == 'url'][0]
        assert url_stage.threshold == 0.95

    def test_result_serializes(self, classifier):
        result = classifier.classify_interaction(make_interaction('Men', f'{SHOP}/browse/men'))

        data = result.to_dict()

        assert data['type'] == 'category'
        assert data['extracted_data']['category_path'] == 'men'
